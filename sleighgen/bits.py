"""Bit-level encoding patterns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Iterator, Optional, Sequence, Tuple

LITERAL_BITS = ("0", "1")


@dataclass(frozen=True, order=True)
class BitRange:
    """Half-open span of pattern positions, position 0 being the leftmost bit."""

    start: int
    stop: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.stop <= self.start:
            raise ValueError(f"invalid bit range [{self.start}, {self.stop})")

    @property
    def width(self) -> int:
        return self.stop - self.start

    def positions(self) -> range:
        return range(self.start, self.stop)

    def __contains__(self, position: object) -> bool:
        return isinstance(position, int) and self.start <= position < self.stop

    def fits(self, width: int) -> bool:
        return self.stop <= width

    def lsb(self, width: int) -> int:
        """Least significant bit number in SLEIGH numbering for a ``width`` token."""

        return width - self.stop

    def msb(self, width: int) -> int:
        return width - 1 - self.start

    def describe(self) -> str:
        return f"[{self.start}:{self.stop})"

    @classmethod
    def spanning(cls, positions: Iterable[int]) -> "BitRange":
        ordered = sorted(positions)
        return cls(ordered[0], ordered[-1] + 1)


def is_contiguous(positions: Iterable[int]) -> bool:
    ordered = sorted(set(positions))
    if not ordered:
        return False
    return ordered[-1] - ordered[0] + 1 == len(ordered)


@dataclass(frozen=True)
class BitPattern:
    """Fixed-width encoding of an instruction.

    Every symbol is either ``"0"``/``"1"`` or the placeholder of the operand
    field owning that position.  ``boundaries`` holds the segment start
    positions written in the input (whitespace between bit groups); they are
    hints for field widening and do not take part in equality.
    """

    bits: Tuple[str, ...]
    boundaries: FrozenSet[int] = field(default=frozenset(), compare=False)

    @classmethod
    def from_bits(cls, bits: Sequence[str], boundaries: Iterable[int] = ()) -> "BitPattern":
        return cls(tuple(bits), frozenset(b for b in boundaries if 0 < b < len(bits)))

    @property
    def width(self) -> int:
        return len(self.bits)

    def is_literal(self, position: int) -> bool:
        return self.bits[position] in LITERAL_BITS

    def literal_positions(self) -> Tuple[int, ...]:
        return tuple(position for position in range(self.width) if self.is_literal(position))

    def value(self, bit_range: BitRange) -> Optional[int]:
        """Return the unsigned value on ``bit_range`` or ``None`` if not all literal."""

        value = 0
        for position in bit_range.positions():
            bit = self.bits[position]
            if bit not in LITERAL_BITS:
                return None
            value = (value << 1) | (1 if bit == "1" else 0)
        return value

    def masked(self, bit_range: BitRange) -> Tuple[str, ...]:
        """Symbols outside ``bit_range``; the range itself is blanked out."""

        return self.bits[: bit_range.start] + ("",) * bit_range.width + self.bits[bit_range.stop :]

    def bind(self, bit_range: BitRange, symbol: str) -> "BitPattern":
        """Return a copy whose ``bit_range`` positions reference ``symbol``."""

        bits = self.bits[: bit_range.start] + (symbol,) * bit_range.width + self.bits[bit_range.stop :]
        return BitPattern(bits, self.boundaries)

    def substitute(self, bit_range: BitRange, value: int) -> "BitPattern":
        """Return a copy with ``value`` written into ``bit_range`` as literal bits."""

        text = format(value & ((1 << bit_range.width) - 1), f"0{bit_range.width}b")
        bits = self.bits[: bit_range.start] + tuple(text) + self.bits[bit_range.stop :]
        return BitPattern(bits, self.boundaries)

    def segment_of(self, positions: Iterable[int]) -> Optional[BitRange]:
        """Return the hinted segment containing every position, if any."""

        ordered = sorted(positions)
        if not ordered or not self.boundaries:
            return None
        edges = [0] + sorted(self.boundaries) + [self.width]
        for start, stop in zip(edges, edges[1:]):
            if start <= ordered[0] and ordered[-1] < stop:
                return BitRange(start, stop)
        return None

    def literal_runs(self) -> Iterator[BitRange]:
        """Yield maximal runs of literal positions, left to right."""

        start: Optional[int] = None
        for position, bit in enumerate(self.bits):
            if bit in LITERAL_BITS:
                if start is None:
                    start = position
            elif start is not None:
                yield BitRange(start, position)
                start = None
        if start is not None:
            yield BitRange(start, self.width)

    def render(self, letters: Optional[dict] = None) -> str:
        """Render literal bits verbatim and field positions as letters.

        ``letters`` maps field placeholders to the single character used for
        them; unknown placeholders render as ``x``.  Segment boundaries are
        rendered as spaces.
        """

        letters = letters or {}
        out = []
        for position, bit in enumerate(self.bits):
            if position in self.boundaries:
                out.append(" ")
            out.append(bit if bit in LITERAL_BITS else letters.get(bit, "x"))
        return "".join(out)

    def to_hex(self) -> Optional[str]:
        """Return the literal pattern as hex digits, ``None`` if it has fields."""

        if any(bit not in LITERAL_BITS for bit in self.bits):
            return None
        digits = max(1, (self.width + 3) // 4)
        return f"0x{int(''.join(self.bits), 2):0{digits}x}"
