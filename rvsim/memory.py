"""Backing store, main-memory timing model and the code/data caches."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path

from .instruction import WORD_MASK, Instruction, IType

MEM_SIZE_WORDS = 1024 * 1024
LINE_SIZE_BYTES = 128
LINE_SIZE_WORDS = LINE_SIZE_BYTES // 4
DATA_CACHE_BYTES = 4096
CODE_CACHE_BYTES = 1024

_ELF_MAGIC = b"\x7fELF"
_ELF_CLASS_32 = 1
_ELF_CLASS_64 = 2
_PT_LOAD = 1

_EHDR32 = struct.Struct("<16sHHIIIIIHHHHHH")
_EHDR64 = struct.Struct("<16sHHIQQQIHHHHHH")
_PHDR32 = struct.Struct("<IIIIIIII")
_PHDR64 = struct.Struct("<IIQQQQQQ")


def _line_addr(address: int) -> int:
    return address & ~(LINE_SIZE_BYTES - 1) & WORD_MASK


def _line_offset(address: int) -> int:
    return (address >> 2) & (LINE_SIZE_WORDS - 1)


class ElfLoadError(Exception):
    """Raised when an ELF image cannot be loaded into memory."""


@dataclass(frozen=True)
class _Segment:
    type: int
    offset: int
    paddr: int
    filesz: int
    memsz: int


class MemoryStorage:
    """Flat little-endian physical memory, addressed in bytes, accessed in words."""

    def __init__(self, size_words: int = MEM_SIZE_WORDS) -> None:
        self._bytes = bytearray(size_words * 4)

    def _word_offset(self, address: int) -> int:
        offset = ((address & WORD_MASK) >> 2) << 2
        if offset + 4 > len(self._bytes):
            raise IndexError(f"address {address:#x} outside memory")
        return offset

    def read(self, address: int) -> int:
        """Read the aligned word containing ``address``."""
        return struct.unpack_from("<I", self._bytes, self._word_offset(address))[0]

    def write(self, address: int, value: int) -> None:
        """Write the aligned word containing ``address``."""
        struct.pack_into("<I", self._bytes, self._word_offset(address), value & WORD_MASK)

    def load_elf(self, path: str | PathLike[str]) -> None:
        """Load the loadable segments of the ELF file at ``path``."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise ElfLoadError(f'failed opening file "{path}"') from exc
        self.load_elf_bytes(data)

    def load_elf_bytes(self, data: bytes) -> None:
        """Load the loadable segments of an in-memory 32- or 64-bit ELF image."""
        if len(data) < _EHDR32.size:
            raise ElfLoadError("file too small to be a valid elf file")
        if data[:4] != _ELF_MAGIC:
            raise ElfLoadError("file is not an elf file")

        elf_class = data[4]
        if elf_class == _ELF_CLASS_32:
            ehdr, phdr = _EHDR32, _PHDR32
        elif elf_class == _ELF_CLASS_64:
            ehdr, phdr = _EHDR64, _PHDR64
        else:
            raise ElfLoadError("file is neither 32-bit nor 64-bit")
        if len(data) < ehdr.size:
            raise ElfLoadError("file too small to be a valid elf file")

        fields = ehdr.unpack_from(data, 0)
        phoff, phnum = fields[5], fields[10]
        if len(data) < phoff + phnum * phdr.size:
            raise ElfLoadError("file too small for expected number of program header tables")

        for index in range(phnum):
            raw = phdr.unpack_from(data, phoff + index * phdr.size)
            if elf_class == _ELF_CLASS_32:
                p_type, p_offset, _, p_paddr, p_filesz, p_memsz, _, _ = raw
            else:
                p_type, _, p_offset, _, p_paddr, p_filesz, p_memsz, _ = raw
            self._load_segment(data, _Segment(p_type, p_offset, p_paddr, p_filesz, p_memsz))

    def _load_segment(self, data: bytes, seg: _Segment) -> None:
        if seg.type != _PT_LOAD or seg.memsz == 0:
            return
        if seg.memsz < seg.filesz:
            raise ElfLoadError("file size is larger than memory size")
        if seg.paddr + seg.memsz > len(self._bytes):
            raise ElfLoadError("segment does not fit in memory")
        if seg.filesz > 0:
            if seg.offset + seg.filesz > len(data):
                raise ElfLoadError("file section overflow")
            self._bytes[seg.paddr : seg.paddr + seg.filesz] = data[
                seg.offset : seg.offset + seg.filesz
            ]
        if seg.memsz > seg.filesz:
            start = seg.paddr + seg.filesz
            self._bytes[start : seg.paddr + seg.memsz] = bytes(seg.memsz - seg.filesz)


class UncachedMem:
    """Main memory with a fixed access latency and line transfer helpers."""

    LATENCY = 120

    def __init__(self, storage: MemoryStorage) -> None:
        self._mem = storage
        self._requested_ip = 0
        self._wait = 0

    def request_fetch(self, ip: int) -> None:
        if ip != self._requested_ip:
            self._requested_ip = ip
            self._wait = self.LATENCY

    def fetch_response(self) -> int | None:
        if self._wait > 0:
            return None
        return self._mem.read(self._requested_ip)

    def request_data(self, instr: Instruction) -> None:
        if instr.is_memory_access():
            self.request_fetch(instr.addr)

    def data_response(self, instr: Instruction) -> bool:
        """Complete a load or store; False while the access is still pending."""
        if not instr.is_memory_access():
            return True
        if self._wait != 0:
            return False
        if instr.type is IType.LD:
            instr.data = self._mem.read(instr.addr)
        else:
            self._mem.write(instr.addr, instr.data)
        return True

    def read_line(self, address: int) -> list[int]:
        return [self._mem.read(address + 4 * i) for i in range(LINE_SIZE_WORDS)]

    def write_line(self, line: list[int], address: int) -> None:
        for i, word in enumerate(line[:LINE_SIZE_WORDS]):
            self._mem.write(address + 4 * i, word)

    def clock(self) -> None:
        if self._wait > 0:
            self._wait -= 1

    def wait_cycles(self) -> int:
        return self._wait


@dataclass
class _CacheLine:
    words: list[int] = field(default_factory=lambda: [0] * LINE_SIZE_WORDS)
    tag: int = 0
    last_used: int = 0


class CachedMem:
    """Fully associative write-back code and data caches with LRU replacement."""

    MISS_LATENCY = 152
    CODE_LATENCY = 1
    DATA_LATENCY = 3
    DIRTY_STORE_PENALTY = 120

    def __init__(self, backing: UncachedMem) -> None:
        self._mem = backing
        self._fetch_ip = 0
        # Line address on a miss, slot index on a hit.
        self._requested = 0
        self._offset = 0
        self._wait = 0
        self._miss = False
        self._code = [_CacheLine() for _ in range(CODE_CACHE_BYTES // LINE_SIZE_BYTES)]
        self._data = [_CacheLine() for _ in range(DATA_CACHE_BYTES // LINE_SIZE_BYTES)]

    @staticmethod
    def _lookup(lines: list[_CacheLine], line_addr: int) -> int | None:
        return next((i for i, line in enumerate(lines) if line.tag == line_addr), None)

    def _install(self, lines: list[_CacheLine], words: list[int], response_time: int) -> None:
        victim = min(range(len(lines)), key=lambda i: lines[i].last_used)
        old = lines[victim]
        if old.last_used != 0:
            self._mem.write_line(old.words, old.tag)
        lines[victim] = _CacheLine(words, self._requested, response_time)

    def request_fetch(self, ip: int) -> None:
        if ip == self._fetch_ip:
            return
        self._fetch_ip = ip
        line_addr = _line_addr(ip)
        slot = self._lookup(self._code, line_addr)
        if slot is not None:
            self._wait = self.CODE_LATENCY
            self._miss = False
            self._requested = slot
        else:
            self._wait = self.MISS_LATENCY
            self._miss = True
            self._requested = line_addr
        self._offset = _line_offset(ip)

    def fetch_response(self, response_time: int) -> int | None:
        if self._wait > 0:
            return None
        if self._miss:
            words = self._mem.read_line(self._requested)
            self._install(self._code, words, response_time)
            return words[self._offset]
        line = self._code[self._requested]
        line.last_used = response_time
        return line.words[self._offset]

    def request_data(self, instr: Instruction) -> None:
        if not instr.is_memory_access():
            return
        line_addr = _line_addr(instr.addr)
        slot = self._lookup(self._data, line_addr)
        if slot is not None:
            self._wait = self.DATA_LATENCY
            self._miss = False
            self._requested = slot
        else:
            self._miss = True
            self._wait = self.MISS_LATENCY
            if instr.type is IType.ST and min(line.last_used for line in self._data):
                self._wait += self.DIRTY_STORE_PENALTY
            self._requested = line_addr
        self._offset = _line_offset(instr.addr)

    def data_response(self, instr: Instruction, response_time: int) -> bool:
        """Complete a load or store; False while the access is still pending."""
        if not instr.is_memory_access():
            return True
        if self._wait != 0:
            return False
        if self._miss:
            words = self._mem.read_line(self._requested)
            if instr.type is IType.ST:
                words[_line_offset(instr.addr)] = instr.data & WORD_MASK
            self._install(self._data, words, response_time)
            if instr.type is IType.LD:
                instr.data = words[self._offset]
        else:
            line = self._data[self._requested]
            line.last_used = response_time
            if instr.type is IType.LD:
                instr.data = line.words[self._offset]
            else:
                line.words[self._offset] = instr.data & WORD_MASK
        return True

    def clock(self) -> None:
        if self._wait > 0:
            self._wait -= 1

    def wait_cycles(self) -> int:
        return self._wait