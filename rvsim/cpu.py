"""Single-issue, non-pipelined CPU model driven one clock at a time."""

from __future__ import annotations

from .decoder import decode
from .executor import execute
from .hostmsg import HostMessage
from .instruction import Instruction
from .memory import CachedMem
from .regfile import CsrFile, RegisterFile


class Cpu:
    """Fetches, executes and retires one instruction at a time through a cache."""

    def __init__(self, mem: CachedMem) -> None:
        self._mem = mem
        self._ip = 0
        self._rf = RegisterFile()
        self._csrf = CsrFile()
        self._pending: Instruction | None = None

    def clock(self) -> None:
        """Advance the CPU by one cycle."""
        self._csrf.clock()
        if self._mem.wait_cycles() != 0:
            return

        if self._pending is None:
            self._mem.request_fetch(self._ip)
            word = self._mem.fetch_response(self._csrf.cycle_number())
            if word is None:
                return
            instr = decode(word)
            self._rf.read(instr)
            self._csrf.read(instr)
            execute(instr, self._ip)
            self._mem.request_data(instr)
            if not self._mem.data_response(instr, self._csrf.cycle_number()):
                self._pending = instr
                return
        else:
            instr, self._pending = self._pending, None
            self._mem.data_response(instr, self._csrf.cycle_number())

        self._rf.write(instr)
        self._csrf.write(instr)
        self._csrf.instruction_executed()
        self._ip = instr.next_ip

    def reset(self, ip: int) -> None:
        """Clear the counters and start executing at ``ip``."""
        self._csrf.reset()
        self._ip = ip

    def take_message(self) -> HostMessage | None:
        """Return and clear the latest message written to ``mtohost``."""
        return self._csrf.take_message()