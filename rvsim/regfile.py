"""Integer register file and control/status register file."""

from __future__ import annotations

from .hostmsg import HostMessage
from .instruction import WORD_MASK, CsrIdx, Instruction, IType


class RegisterFile:
    """The 32 general-purpose registers, all starting at zero."""

    SIZE = 32

    def __init__(self) -> None:
        self._regs = [0] * self.SIZE

    def _check(self, index: int) -> int:
        if not 0 <= index < self.SIZE:
            raise IndexError(f"register index {index} out of range")
        return index

    def read(self, instr: Instruction) -> None:
        """Load source operand values into ``instr``."""
        if instr.src1 is not None:
            instr.src1_val = self._regs[self._check(instr.src1)]
        if instr.src2 is not None:
            instr.src2_val = self._regs[self._check(instr.src2)]

    def write(self, instr: Instruction) -> None:
        """Write back ``instr.data`` to its destination register, if any."""
        if instr.dst is not None:
            self._regs[self._check(instr.dst)] = instr.data & WORD_MASK

    def __getitem__(self, index: int) -> int:
        return self._regs[self._check(index)]


class CsrFile:
    """Counters and the host mailbox CSR."""

    def __init__(self) -> None:
        self._instret = 0
        self._cycles = 0
        self._core_id = 0
        self._message: HostMessage | None = None

    def reset(self) -> None:
        self._instret = 0
        self._cycles = 0
        self._core_id = 0
        self._message = None

    def read(self, instr: Instruction) -> None:
        """Fill ``instr.csr_val`` for readable CSRs."""
        if instr.csr is None:
            return
        match instr.csr:
            case CsrIdx.INSTRET:
                instr.csr_val = self._instret
            case CsrIdx.CYCLE:
                instr.csr_val = self._cycles
            case CsrIdx.MHARTID:
                instr.csr_val = self._core_id
            case _:
                pass

    def write(self, instr: Instruction) -> None:
        """Latch a host message when ``mtohost`` is written."""
        if instr.type is IType.CSRW and instr.csr == CsrIdx.MTOHOST:
            self._message = HostMessage.from_payload(instr.data & WORD_MASK)

    def instruction_executed(self) -> None:
        self._instret = (self._instret + 1) & WORD_MASK

    def clock(self) -> None:
        self._cycles = (self._cycles + 1) & WORD_MASK

    def cycle_number(self) -> int:
        return self._cycles

    def take_message(self) -> HostMessage | None:
        """Return the pending host message, clearing it."""
        message, self._message = self._message, None
        return message