import pytest

from rvsim.decoder import decode
from rvsim.executor import alu_result, branch_taken, execute
from rvsim.instruction import (
    AluFunc,
    BrFunc,
    CsrIdx,
    Instruction,
    IType,
    Opcode,
    POISON,
)

IP = 0x200


def _r(f7, rs2, rs1, f3, rd, op=Opcode.OP):
    return (f7 << 25) | (rs2 << 20) | (rs1 << 15) | (f3 << 12) | (rd << 7) | op


def _i(imm, rs1, f3, rd, op):
    return ((imm & 0xFFF) << 20) | (rs1 << 15) | (f3 << 12) | (rd << 7) | op


def _b(imm, rs2, rs1, f3):
    imm &= 0x1FFF
    return (
        (((imm >> 12) & 1) << 31)
        | (((imm >> 5) & 0x3F) << 25)
        | (rs2 << 20)
        | (rs1 << 15)
        | (f3 << 12)
        | (((imm >> 1) & 0xF) << 8)
        | (((imm >> 11) & 1) << 7)
        | Opcode.BRANCH
    )


OPS = {
    "add": (0, 0x00),
    "sub": (0, 0x20),
    "sll": (1, 0x00),
    "slt": (2, 0x00),
    "sltu": (3, 0x00),
    "xor": (4, 0x00),
    "srl": (5, 0x00),
    "sra": (5, 0x20),
    "or": (6, 0x00),
    "and": (7, 0x00),
}


def _rr(name, val1, val2):
    f3, f7 = OPS[name]
    instr = decode(_r(f7, 2, 1, f3, 3))
    instr.src1_val = val1
    instr.src2_val = val2
    execute(instr, IP)
    return instr


# TEST_RR_OP style cases
@pytest.mark.parametrize(
    "name, result, val1, val2",
    [
        ("add", 0x00000000, 0x00000000, 0x00000000),
        ("add", 0x00000002, 0x00000001, 0x00000001),
        ("add", 0x0000000A, 0x00000003, 0x00000007),
        ("add", 0x80000000, 0x7FFFFFFF, 0x00000001),
        ("add", 0x00000000, 0xFFFFFFFF, 0x00000001),
        ("sub", 0xFFFFFFFC, 0x00000003, 0x00000007),
        ("sub", 0x00000000, 0x00000001, 0x00000001),
        ("sll", 0x80000000, 0x00000001, 31),
        ("sll", 0x48484000, 0x21212121, 14),
        ("sll", 0x00000002, 0x00000001, 33),
        ("srl", 0x40000000, 0x80000000, 1),
        ("srl", 0x00000001, 0xFFFFFFFF, 31),
        ("sra", 0xC0000000, 0x80000000, 1),
        ("sra", 0x00000000, 0x7FFFFFFF, 31),
        ("sra", 0xFFFFFFFF, 0x81818181, 31),
        ("slt", 1, 0xFFFFFFFF, 0x00000001),
        ("slt", 0, 0x00000001, 0xFFFFFFFF),
        ("sltu", 0, 0xFFFFFFFF, 0x00000001),
        ("sltu", 1, 0x00000001, 0xFFFFFFFF),
        ("and", 0x0F000F00, 0xFF00FF00, 0x0F0F0F0F),
        ("or", 0xFF0FFF0F, 0xFF00FF00, 0x0F0F0F0F),
        ("xor", 0xF00FF00F, 0xFF00FF00, 0x0F0F0F0F),
    ],
)
def test_rr_op(name, result, val1, val2):
    instr = _rr(name, val1, val2)
    assert instr.data == result
    assert instr.next_ip == IP + 4


@pytest.mark.parametrize(
    "f3, imm, val1, result",
    [
        (0, 1, 0xFFFFFFFF, 0),
        (0, -1, 0x00000000, 0xFFFFFFFF),
        (0, 2047, 0x00000001, 0x00000800),
        (7, 0x0F0, 0xFF00FF00, 0x00000000),
        (2, -1, 0x00000000, 0),
        (3, -1, 0x00000000, 1),
    ],
)
def test_imm_op(f3, imm, val1, result):
    instr = decode(_i(imm, 1, f3, 3, Opcode.OP_IMM))
    instr.src1_val = val1
    execute(instr, IP)
    assert instr.data == result


def test_srai():
    instr = decode(_r(0x20, 4, 1, 5, 3, Opcode.OP_IMM))
    instr.src1_val = 0x80000000
    execute(instr, IP)
    assert instr.data == 0xF8000000


def test_lui_places_upper_immediate():
    instr = decode((0x12345 << 12) | (5 << 7) | Opcode.LUI)
    execute(instr, IP)
    assert instr.data == 0x12345000


def test_auipc():
    instr = decode((0x1 << 12) | (5 << 7) | Opcode.AUIPC)
    execute(instr, IP)
    assert instr.data == IP + 0x1000
    assert instr.next_ip == IP + 4


@pytest.mark.parametrize(
    "f3, val1, val2, taken",
    [
        (0, 5, 5, True),
        (0, 5, 6, False),
        (1, 5, 6, True),
        (1, 5, 5, False),
        (4, 0xFFFFFFFF, 1, True),
        (4, 1, 0xFFFFFFFF, False),
        (6, 1, 0xFFFFFFFF, True),
        (6, 0xFFFFFFFF, 1, False),
        (5, 1, 0xFFFFFFFF, True),
        (5, 0xFFFFFFFF, 1, False),
        (7, 0xFFFFFFFF, 1, True),
        (7, 1, 0xFFFFFFFF, False),
    ],
)
def test_branches(f3, val1, val2, taken):
    instr = decode(_b(-8, 2, 1, f3))
    instr.src1_val = val1
    instr.src2_val = val2
    assert branch_taken(instr) is taken
    execute(instr, IP)
    assert instr.next_ip == (IP - 8 if taken else IP + 4)


def test_jal_links_and_jumps():
    imm = 16
    word = (((imm >> 1) & 0x3FF) << 21) | (1 << 7) | Opcode.JAL
    instr = decode(word)
    execute(instr, IP)
    assert instr.data == IP + 4
    assert instr.next_ip == IP + imm


def test_jalr_target_is_register_plus_offset():
    instr = decode(_i(4, 6, 0, 19, Opcode.JALR))
    instr.src1_val = 0x1000
    execute(instr, IP)
    assert instr.next_ip == 0x1004
    assert instr.data == IP + 4


def test_load_address():
    instr = decode(_i(-4, 1, 0b010, 3, Opcode.LOAD))
    instr.src1_val = 0x2000
    execute(instr, IP)
    assert instr.addr == 0x1FFC
    assert instr.next_ip == IP + 4


def test_store_address_and_data():
    imm = 8
    word = ((imm >> 5) << 25) | (2 << 20) | (1 << 15) | (0b010 << 12) | ((imm & 0x1F) << 7) | Opcode.STORE
    instr = decode(word)
    instr.src1_val = 0x2000
    instr.src2_val = 0xCAFE
    execute(instr, IP)
    assert instr.addr == 0x2008
    assert instr.data == 0xCAFE


def test_csr_moves():
    csrw = decode(_i(CsrIdx.MTOHOST, 28, 0b001, 0, Opcode.SYSTEM))
    csrw.src1_val = 0x0001000A
    execute(csrw, IP)
    assert csrw.data == 0x0001000A

    csrr = decode(_i(CsrIdx.CYCLE, 0, 0b010, 10, Opcode.SYSTEM))
    csrr.csr_val = 1234
    execute(csrr, IP)
    assert csrr.data == 1234
    assert csrr.next_ip == IP + 4


def test_unsupported_leaves_fields_untouched():
    instr = decode(Opcode.MISC_MEM)
    execute(instr, IP)
    assert instr.next_ip == POISON
    assert instr.data == POISON


def test_alu_without_operand_gives_zero():
    assert alu_result(Instruction(type=IType.ALU, alu_func=AluFunc.ADD, imm=5, src1_val=7)) == 0
    assert alu_result(Instruction(type=IType.ALU, alu_func=AluFunc.ADD, src1=1, src1_val=7)) == 0


def test_branch_always_and_never():
    assert branch_taken(Instruction(br_func=BrFunc.AT)) is True
    assert branch_taken(Instruction(br_func=BrFunc.NT)) is False