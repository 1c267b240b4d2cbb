"""Instruction record and the enumerations describing RV32I encodings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, auto

WORD_MASK = 0xFFFFFFFF
POISON = 0xDEADBEAF


class Opcode(IntEnum):
    LOAD = 0b0000011
    MISC_MEM = 0b0001111
    OP_IMM = 0b0010011
    AUIPC = 0b0010111
    STORE = 0b0100011
    AMO = 0b0101111
    OP = 0b0110011
    LUI = 0b0110111
    BRANCH = 0b1100011
    JALR = 0b1100111
    JAL = 0b1101111
    SYSTEM = 0b1110011


class CsrIdx(IntEnum):
    INSTRET = 0xC02
    CYCLE = 0xC00
    MHARTID = 0xF10
    MTOHOST = 0x780
    NONE = 0xFFF


class IType(Enum):
    UNSUPPORTED = auto()
    ALU = auto()
    LD = auto()
    ST = auto()
    J = auto()
    JR = auto()
    BR = auto()
    CSRR = auto()
    CSRW = auto()
    AUIPC = auto()


class BrFunc(IntEnum):
    EQ = 0b000
    NEQ = 0b001
    LT = 0b100
    LTU = 0b110
    GE = 0b101
    GEU = 0b111
    AT = 0b1000
    NT = 0b1001


class AluFunc(IntEnum):
    ADD = 0b000
    SLL = 0b001
    SLT = 0b010
    SLTU = 0b011
    XOR = 0b100
    AND = 0b111
    OR = 0b110
    SR = 0b101
    SUB = 0b1000
    SRA = 0b1001
    SRL = 0b1010
    NONE = 0b1011


FN_LW = 0b010
FN_SW = 0b010
FN_CSRRW = 0b001
FN_CSRRS = 0b010


@dataclass
class Instruction:
    """A decoded instruction as it travels through the pipeline stages."""

    type: IType = IType.UNSUPPORTED
    br_func: BrFunc = BrFunc.NT
    alu_func: AluFunc = AluFunc.NONE
    dst: int | None = None
    src1: int | None = None
    src2: int | None = None
    csr: int | None = None
    imm: int | None = None

    src1_val: int = 0
    src2_val: int = 0
    csr_val: int = 0
    data: int = POISON
    addr: int = POISON
    next_ip: int = POISON

    def is_memory_access(self) -> bool:
        """True for loads and stores."""
        return self.type in (IType.LD, IType.ST)