"""Stateless RV32I instruction decoder."""

from __future__ import annotations

from .instruction import (
    FN_CSRRS,
    FN_CSRRW,
    FN_LW,
    FN_SW,
    WORD_MASK,
    AluFunc,
    BrFunc,
    Instruction,
    IType,
    Opcode,
)


def sign_extend(value: int, sign_bit: int) -> int:
    """Sign-extend ``value`` whose sign is at bit ``sign_bit``; returns a signed int32."""
    if (value >> sign_bit) & 1:
        value -= 1 << (sign_bit + 1)
    return ((value + 0x80000000) & WORD_MASK) - 0x80000000


def _bits(word: int, low: int, width: int) -> int:
    return (word >> low) & ((1 << width) - 1)


def decode(word: int) -> Instruction:
    """Decode a 32-bit instruction word into an :class:`Instruction`."""
    word &= WORD_MASK
    opcode = word & 0x7F
    rd = _bits(word, 7, 5)
    funct3 = _bits(word, 12, 3)
    rs1 = _bits(word, 15, 5)
    rs2 = _bits(word, 20, 5)
    alu_sel = _bits(word, 30, 1)

    imm_i = sign_extend(_bits(word, 20, 12), 11)
    imm_s = sign_extend((_bits(word, 25, 7) << 5) | _bits(word, 7, 5), 11)
    imm_u = word & 0xFFFFF000
    imm_b = sign_extend(
        (_bits(word, 31, 1) << 12)
        | (_bits(word, 7, 1) << 11)
        | (_bits(word, 25, 6) << 5)
        | (_bits(word, 8, 4) << 1),
        12,
    )
    imm_j = sign_extend(
        (_bits(word, 31, 1) << 20)
        | (_bits(word, 12, 8) << 12)
        | (_bits(word, 20, 1) << 11)
        | (_bits(word, 21, 10) << 1),
        20,
    )

    try:
        op: Opcode | None = Opcode(opcode)
    except ValueError:
        op = None

    instr = Instruction()
    match op:
        case Opcode.OP_IMM:
            instr.type = IType.ALU
            instr.imm = imm_i & WORD_MASK
            instr.alu_func = AluFunc(funct3)
            if instr.alu_func is AluFunc.SR:
                instr.alu_func = AluFunc.SRA if alu_sel else AluFunc.SRL
                instr.imm &= 31
            instr.dst = rd
            instr.src1 = rs1
        case Opcode.OP:
            instr.type = IType.ALU
            func = AluFunc(funct3)
            if func is AluFunc.ADD:
                instr.alu_func = AluFunc.SUB if alu_sel else AluFunc.ADD
            elif func is AluFunc.SR:
                instr.alu_func = AluFunc.SRA if alu_sel else AluFunc.SRL
            else:
                instr.alu_func = func
            instr.dst = rd
            instr.src1 = rs1
            instr.src2 = rs2
        case Opcode.LUI:
            instr.type = IType.ALU
            instr.alu_func = AluFunc.ADD
            instr.dst = rd
            instr.src1 = 0
            instr.imm = imm_u
        case Opcode.AUIPC:
            instr.type = IType.AUIPC
            instr.dst = rd
            instr.imm = imm_u
        case Opcode.JAL:
            instr.type = IType.J
            instr.br_func = BrFunc.AT
            instr.dst = rd
            instr.imm = imm_j & WORD_MASK
        case Opcode.JALR:
            instr.type = IType.JR
            instr.br_func = BrFunc.AT
            instr.dst = rd
            instr.src1 = rs1
            instr.imm = imm_i & WORD_MASK
        case Opcode.BRANCH:
            try:
                instr.br_func = BrFunc(funct3)
                instr.type = IType.BR
            except ValueError:
                instr.type = IType.UNSUPPORTED
                instr.br_func = BrFunc.NT
            instr.src1 = rs1
            instr.src2 = rs2
            instr.imm = imm_b & WORD_MASK
        case Opcode.LOAD:
            instr.type = IType.LD if funct3 == FN_LW else IType.UNSUPPORTED
            instr.alu_func = AluFunc.ADD
            instr.dst = rd
            instr.src1 = rs1
            instr.imm = imm_i & WORD_MASK
        case Opcode.STORE:
            instr.type = IType.ST if funct3 == FN_SW else IType.UNSUPPORTED
            instr.alu_func = AluFunc.ADD
            instr.src1 = rs1
            instr.src2 = rs2
            instr.imm = imm_s & WORD_MASK
        case Opcode.SYSTEM:
            if funct3 == FN_CSRRW and rd == 0:
                instr.type = IType.CSRW
            elif funct3 == FN_CSRRS and rs1 == 0:
                instr.type = IType.CSRR
            instr.dst = rd
            instr.src1 = rs1
            instr.csr = imm_i & 0xFFF
        case _:
            # FENCE, AMO, LR/SC and unknown opcodes are not modelled.
            instr.type = IType.UNSUPPORTED
            instr.alu_func = AluFunc.NONE
            instr.br_func = BrFunc.NT

    if not instr.dst:
        instr.dst = None
    return instr