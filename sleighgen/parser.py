"""Reader for the line oriented instruction listing.

Each non-blank line describes one concrete encoding::

    # comment
    000000 00000 00001 | ADD R0, R1
    0x1f03             | MOVI 3        // trailing comment

The part before ``|`` is the bit pattern, most significant bit first.  Binary
patterns may be split into whitespace separated groups; the group edges are
kept as segment hints used when widening fields.  ``_`` separates bits
visually without recording a hint.  Hex patterns (``0x`` prefix) expand to
four bits per digit and record a hint at every byte edge.  The part after
``|`` is the mnemonic followed by the operand text.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .bits import BitPattern
from .errors import ParseError
from .instruction import InstructionEntry, SourceRecord, tokenize_operands

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("#", ";")
TRAILING_COMMENT = "//"
SEPARATOR = "|"

_BINARY_GROUP = re.compile(r"^[01_]+$")
_HEX = re.compile(r"^0[xX](?P<digits>[0-9A-Fa-f_]+)$")


def parse_pattern(text: str) -> BitPattern:
    """Parse the pattern column into a :class:`BitPattern`."""

    text = text.strip()
    if not text:
        raise ValueError("missing bit pattern")

    hex_match = _HEX.match(text)
    if hex_match is not None:
        digits = hex_match.group("digits").replace("_", "")
        if not digits:
            raise ValueError(f"empty hex pattern {text!r}")
        bits = "".join(format(int(digit, 16), "04b") for digit in digits)
        return BitPattern.from_bits(tuple(bits), range(8, len(bits), 8))

    bits: List[str] = []
    boundaries: List[int] = []
    for group in text.split():
        if not _BINARY_GROUP.match(group):
            raise ValueError(f"invalid bit group {group!r}")
        if bits:
            boundaries.append(len(bits))
        bits.extend(ch for ch in group if ch != "_")
    if not bits:
        raise ValueError(f"bit pattern {text!r} has no bits")
    return BitPattern.from_bits(tuple(bits), boundaries)


def split_syntax(text: str) -> Tuple[str, Tuple[str, ...]]:
    parts = text.strip().split(None, 1)
    if not parts:
        raise ValueError("missing mnemonic")
    mnemonic = parts[0]
    operands = tokenize_operands(parts[1]) if len(parts) > 1 else ()
    return mnemonic, operands


class InstructionFileParser:
    """Turn listing lines into raw :class:`InstructionEntry` values."""

    def load(self, path: Path) -> List[InstructionEntry]:
        try:
            text = path.read_text("utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(f"cannot read {path}: {exc}") from exc
        return self.parse_lines(text.splitlines())

    def parse_lines(self, lines: Iterable[str]) -> List[InstructionEntry]:
        entries: List[InstructionEntry] = []
        for line_number, line in enumerate(lines, start=1):
            entry = self.parse_line(line, line_number, len(entries))
            if entry is not None:
                entries.append(entry)
        if not entries:
            raise ParseError("no instructions found")
        logger.debug("parsed %d instructions", len(entries))
        return entries

    def parse_line(self, line: str, line_number: int, ordinal: int) -> Optional[InstructionEntry]:
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIXES):
            return None
        if TRAILING_COMMENT in stripped:
            stripped = stripped.split(TRAILING_COMMENT, 1)[0].rstrip()
        if SEPARATOR not in stripped:
            raise ParseError(f"expected '<pattern> {SEPARATOR} <instruction>'", line_number)

        pattern_text, syntax_text = stripped.split(SEPARATOR, 1)
        try:
            pattern = parse_pattern(pattern_text)
            mnemonic, operands = split_syntax(syntax_text)
        except ValueError as exc:
            raise ParseError(str(exc), line_number) from exc

        source = SourceRecord(
            ordinal=ordinal,
            text=syntax_text.strip(),
            pattern_text=pattern_text.strip(),
            line_number=line_number,
        )
        return InstructionEntry(
            mnemonic=mnemonic,
            operands=operands,
            pattern=pattern,
            ordinal=ordinal,
            sources=(source,),
        )
