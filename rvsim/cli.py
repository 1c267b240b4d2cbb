"""Command-line driver: load an ELF program and run it until it exits."""

from __future__ import annotations

import argparse
import sys
from typing import TextIO

from .cpu import Cpu
from .hostmsg import CpuToHostType
from .memory import CachedMem, ElfLoadError, MemoryStorage, UncachedMem

START_ADDRESS = 0x200


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def run(cpu: Cpu, memory: CachedMem, out: TextIO) -> int:
    """Clock ``cpu`` and ``memory`` until the program exits; return its exit code."""
    print_int = 0
    while True:
        cpu.clock()
        memory.clock()
        message = cpu.take_message()
        if message is None:
            continue
        match message.type:
            case CpuToHostType.EXIT_CODE:
                if message.data == 0:
                    out.write("PASSED\n")
                else:
                    out.write(f"FAILED: exit code = {message.data}\n")
                out.flush()
                return message.data
            case CpuToHostType.PRINT_CHAR:
                out.write(chr(message.data & 0xFF))
            case CpuToHostType.PRINT_INT_LOW:
                print_int = message.data
            case CpuToHostType.PRINT_INT_HIGH:
                print_int |= message.data << 16
                out.write(str(_as_int32(print_int)))
            case _:
                pass


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run an RV32I ELF program on the simulator.")
    parser.add_argument("program", nargs="?", default="program", help="ELF file to run")
    args = parser.parse_args(argv)

    storage = MemoryStorage()
    try:
        storage.load_elf(args.program)
    except ElfLoadError as exc:
        print(f"ERROR: load_elf: {exc}", file=sys.stderr)
        return 1

    cache = CachedMem(UncachedMem(storage))
    cpu = Cpu(cache)
    cpu.reset(START_ADDRESS)
    return run(cpu, cache, sys.stderr)


if __name__ == "__main__":
    sys.exit(main())