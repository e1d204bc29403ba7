from pathlib import Path

import pytest

from sleighgen.bits import BitRange
from sleighgen.errors import ParseError
from sleighgen.parser import InstructionFileParser, parse_pattern, split_syntax


def test_parse_pattern_records_group_boundaries():
    pattern = parse_pattern("000000 00000 00001")

    assert pattern.width == 16
    assert pattern.boundaries == frozenset({6, 11})
    assert pattern.value(BitRange(11, 16)) == 1


def test_parse_pattern_underscore_is_not_a_boundary():
    pattern = parse_pattern("0001_1010")

    assert pattern.width == 8
    assert pattern.boundaries == frozenset()


def test_parse_pattern_hex_marks_byte_edges():
    pattern = parse_pattern("0x1f03")

    assert pattern.width == 16
    assert pattern.boundaries == frozenset({8})
    assert pattern.to_hex() == "0x1f03"


@pytest.mark.parametrize("text", ["", "0012", "0x", "01 ab"])
def test_parse_pattern_rejects_malformed_text(text):
    with pytest.raises(ValueError):
        parse_pattern(text)


def test_split_syntax():
    assert split_syntax("  ADD R0, R1 ") == ("ADD", ("R0", ",", "R1"))
    assert split_syntax("NOP") == ("NOP", ())


def test_parse_lines_skips_comments_and_assigns_ordinals():
    entries = InstructionFileParser().parse_lines(
        [
            "# listing header",
            "",
            "; another comment",
            "0000 0001 | INC A   // trailing",
            "0000 0010 | DEC A",
        ]
    )

    assert [entry.mnemonic for entry in entries] == ["INC", "DEC"]
    assert [entry.ordinal for entry in entries] == [0, 1]
    assert entries[0].operands == ("A",)
    source = entries[0].sources[0]
    assert source.line_number == 4
    assert source.text == "INC A"
    assert source.pattern_text == "0000 0001"


@pytest.mark.parametrize(
    "line",
    [
        "0000 0001 INC A",
        "0000 0002 | INC A",
        "0000 0001 |",
        " | INC A",
    ],
)
def test_parse_line_errors_carry_line_number(line):
    with pytest.raises(ParseError) as excinfo:
        InstructionFileParser().parse_lines(["0000 0000 | NOP", line])

    assert excinfo.value.line_number == 2
    assert str(excinfo.value).startswith("line 2: ")


def test_parse_lines_requires_an_instruction():
    with pytest.raises(ParseError, match="no instructions found"):
        InstructionFileParser().parse_lines(["# only a comment"])


def test_load_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ParseError, match="cannot read") as excinfo:
        InstructionFileParser().load(tmp_path / "missing.txt")

    assert excinfo.value.line_number is None


def test_load_reads_listing(tmp_path: Path) -> None:
    listing = tmp_path / "listing.txt"
    listing.write_text("0x00 | NOP\n0x01 | HALT\n", "utf-8")

    entries = InstructionFileParser().load(listing)

    assert [entry.syntax() for entry in entries] == ["NOP", "HALT"]
    assert entries[1].pattern.to_hex() == "0x01"
