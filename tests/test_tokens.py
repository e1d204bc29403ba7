from sleighgen.attach import AttachGroupComputer
from sleighgen.bits import BitRange
from sleighgen.combine import combine_immediates, combine_registers
from sleighgen.diagnostics import FIELD_OUT_OF_RANGE, TOKEN_WIDTH, DiagnosticLog
from sleighgen.instruction import FieldKind, InstructionEntry, OperandField
from sleighgen.parser import InstructionFileParser, parse_pattern
from sleighgen.registers import RegisterCatalog
from sleighgen.tokens import TokenFieldComputer


def prepare(*lines):
    entries = InstructionFileParser().parse_lines(lines)
    entries = combine_immediates(entries)
    entries = combine_registers(entries, RegisterCatalog.build())
    entries, _ = AttachGroupComputer().compute(entries)
    return entries


def test_equal_register_fields_share_one_token_field():
    entries = prepare(
        "000000 00000 00001 | ADD R0, R1",
        "000000 00000 00010 | ADD R0, R2",
        "000001 00000 00001 | SUB R0, R1",
        "000001 00000 00010 | SUB R0, R2",
    )

    table = TokenFieldComputer().compute(entries)

    container = table.containers[16]
    assert container.name == "instr16"
    register_fields = [f for f in container.fields if f.role == "reg"]
    assert len(register_fields) == 1
    assert register_fields[0].name == "reg_0_4"
    assert (register_fields[0].lsb, register_fields[0].msb) == (0, 4)
    add, sub = table.layouts
    assert add.constraints[-1].field is sub.constraints[-1].field
    assert add.constraints[0].field is sub.constraints[0].field
    assert add.constraints[0].value == 0
    assert sub.constraints[0].value == 0b100000
    assert add.display() == "ADD R0,reg_0_4"


def test_signed_immediate_gets_its_own_field():
    entries = prepare(
        "0001 0000 | LDI 0",
        "0001 0001 | LDI 1",
        "0010 1111 | ADDQ -1",
        "0010 0000 | ADDQ 0",
    )

    table = TokenFieldComputer().compute(entries)

    names = [f.name for f in table.containers[8].fields]
    assert "imm_0_3" in names
    assert "simm_0_3" in names
    assert "op_4_7" in names


def test_mixed_widths_qualify_field_names():
    entries = prepare("0001 0000 | NOP", "0x0102 | HALT")

    table = TokenFieldComputer().compute(entries)

    assert sorted(table.containers) == [8, 16]
    assert [f.name for f in table.containers[8].fields] == ["op8_0_7"]
    assert [f.name for f in table.containers[16].fields] == ["op16_0_15"]


def test_out_of_range_field_rejects_only_that_entry():
    diagnostics = DiagnosticLog()
    bad = InstructionEntry(
        mnemonic="BAD",
        operands=("<imm6:10>",),
        pattern=parse_pattern("00000000"),
        ordinal=0,
        fields=(OperandField(FieldKind.IMMEDIATE, BitRange(6, 10), 0),),
    )
    good = InstructionFileParser().parse_line("00000001 | NOP", 2, 1)

    table = TokenFieldComputer(diagnostics).compute([bad, good])

    assert table.rejected == [bad]
    assert [layout.entry.mnemonic for layout in table.layouts] == ["NOP"]
    (conflict,) = diagnostics.filter(FIELD_OUT_OF_RANGE)
    assert conflict.ordinals == (0,)


def test_partial_byte_width_is_reported():
    diagnostics = DiagnosticLog()
    entries = prepare("1100 00 | NOP", "1100 01 | HALT", "0000 0000 | BRK")

    table = TokenFieldComputer(diagnostics).compute(entries)

    assert sorted(table.containers) == [6, 8]
    (conflict,) = diagnostics.filter(TOKEN_WIDTH)
    assert conflict.ordinals == (0, 1)
    assert "token width 6" in conflict.message
