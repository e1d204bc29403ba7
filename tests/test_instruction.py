import pytest

from sleighgen.bits import BitRange
from sleighgen.combine import combine_immediates
from sleighgen.instruction import (
    FieldKind,
    OperandField,
    format_operands,
    parse_literal,
    tokenize_operands,
)
from sleighgen.parser import InstructionFileParser


@pytest.mark.parametrize(
    "text,expected",
    [
        ("R0, R1", ("R0", ",", "R1")),
        ("#-3", ("#", "-3")),
        ("[r1-4]", ("[", "r1", "-", "4", "]")),
        ("0x10(sp)", ("0x10", "(", "sp", ")")),
        ("", ()),
    ],
)
def test_tokenize_operands(text, expected):
    assert tokenize_operands(text) == expected


@pytest.mark.parametrize(
    "token,expected",
    [
        ("0x1F", 31),
        ("0b101", 5),
        ("0Ah", 10),
        ("12", 12),
        ("-12", -12),
        ("R1", None),
        ("ah", None),
        ("#", None),
    ],
)
def test_parse_literal(token, expected):
    assert parse_literal(token) == expected


def test_format_operands_spaces_only_between_words():
    assert format_operands(("R0", ",", "R1")) == "R0,R1"
    assert format_operands(("0x10", "(", "sp", ")")) == "0x10(sp)"
    assert format_operands(("far", "label")) == "far label"


def test_register_field_accepts_only_mapped_values():
    operand_field = OperandField(
        kind=FieldKind.REGISTER,
        bit_range=BitRange(4, 6),
        token_index=0,
        mapping=((1, "R1"), (2, "R2")),
    )

    assert operand_field.placeholder == "<reg4:6>"
    assert operand_field.register_for(2) == "R2"
    assert operand_field.accepts(1)
    assert not operand_field.accepts(0)


def test_immediate_field_accepts_any_value_of_its_width():
    operand_field = OperandField(FieldKind.IMMEDIATE, BitRange(4, 6), 1)

    assert operand_field.accepts(3)
    assert not operand_field.accepts(4)
    assert FieldKind.IMMEDIATE.letter == "i"


def test_combined_entry_covers_its_sources():
    entries = InstructionFileParser().parse_lines(
        [
            "0001 0000 | MOVI #0",
            "0001 0001 | MOVI #1",
            "0001 0010 | MOVI #2",
        ]
    )
    (combined,) = combine_immediates(entries)
    other = InstructionFileParser().parse_lines(["0010 0001 | MOVI #1"])[0]

    assert combined.syntax() == "MOVI #<imm4:8>"
    assert combined.opcode_text() == "0001 iiii"
    assert all(combined.covers(entry) for entry in entries)
    assert not combined.covers(other)
