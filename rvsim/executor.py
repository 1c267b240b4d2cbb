"""Execute stage: ALU, branch resolution and address generation."""

from __future__ import annotations

from .instruction import WORD_MASK, AluFunc, BrFunc, Instruction, IType


def _signed(word: int) -> int:
    word &= WORD_MASK
    return word - 0x100000000 if word & 0x80000000 else word


def alu_result(instr: Instruction) -> int:
    """Compute the ALU output; 0 when an operand is missing."""
    if instr.src1 is None:
        return 0
    if instr.imm is not None:
        second = instr.imm & WORD_MASK
    elif instr.src2 is not None:
        second = instr.src2_val & WORD_MASK
    else:
        return 0
    first = instr.src1_val & WORD_MASK

    match instr.alu_func:
        case AluFunc.ADD:
            return (first + second) & WORD_MASK
        case AluFunc.SUB:
            return (first - second) & WORD_MASK
        case AluFunc.AND:
            return first & second
        case AluFunc.OR:
            return first | second
        case AluFunc.XOR:
            return first ^ second
        case AluFunc.SLT:
            return int(_signed(first) < _signed(second))
        case AluFunc.SLTU:
            return int(first < second)
        case AluFunc.SLL:
            return (first << (second % 32)) & WORD_MASK
        case AluFunc.SRL:
            return first >> (second % 32)
        case AluFunc.SRA:
            return (_signed(first) >> (second % 32)) & WORD_MASK
        case _:
            return 0


def branch_taken(instr: Instruction) -> bool:
    """Decide whether a branch or jump is taken."""
    first = instr.src1_val & WORD_MASK
    second = instr.src2_val & WORD_MASK
    match instr.br_func:
        case BrFunc.EQ:
            return first == second
        case BrFunc.NEQ:
            return first != second
        case BrFunc.LT:
            return _signed(first) < _signed(second)
        case BrFunc.LTU:
            return first < second
        case BrFunc.GE:
            return _signed(first) >= _signed(second)
        case BrFunc.GEU:
            return first >= second
        case BrFunc.AT:
            return True
        case _:
            return False


def execute(instr: Instruction, ip: int) -> None:
    """Fill in data, address and next IP of ``instr`` executed at ``ip``."""
    fallthrough = (ip + 4) & WORD_MASK
    match instr.type:
        case IType.ALU:
            instr.data = alu_result(instr)
            instr.next_ip = fallthrough
        case IType.LD:
            instr.addr = alu_result(instr)
            instr.next_ip = fallthrough
        case IType.ST:
            instr.addr = alu_result(instr)
            instr.data = instr.src2_val
            instr.next_ip = fallthrough
        case IType.CSRW:
            instr.data = instr.src1_val
            instr.next_ip = fallthrough
        case IType.CSRR:
            instr.data = instr.csr_val
            instr.next_ip = fallthrough
        case IType.J | IType.BR:
            if instr.type is IType.J:
                instr.data = fallthrough
            if branch_taken(instr):
                instr.next_ip = (ip + (instr.imm or 0)) & WORD_MASK
            else:
                instr.next_ip = fallthrough
        case IType.JR:
            instr.data = fallthrough
            if branch_taken(instr):
                instr.next_ip = ((instr.imm or 0) + instr.src1_val) & WORD_MASK
            else:
                instr.next_ip = fallthrough
        case IType.AUIPC:
            instr.data = (ip + (instr.imm or 0)) & WORD_MASK
            instr.next_ip = fallthrough
        case _:
            pass