"""Instruction entries and operand syntax helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .bits import BitPattern, BitRange

_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<number>-?(?:0[xX][0-9A-Fa-f]+|0[bB][01]+|[0-9][0-9A-Fa-f]*[hH]|[0-9]+))(?![\w.$%])"
    r"|(?P<word>[A-Za-z_.$%][\w.$%]*)"
    r"|(?P<punct>\S)"
    r")"
)

_LITERAL = re.compile(
    r"^(?P<sign>-?)(?:0[xX](?P<hex>[0-9A-Fa-f]+)|0[bB](?P<bin>[01]+)"
    r"|(?P<hsuffix>[0-9][0-9A-Fa-f]*)[hH]|(?P<dec>[0-9]+))$"
)


def tokenize_operands(text: str) -> Tuple[str, ...]:
    """Split operand text into word, number and punctuation tokens.

    A leading ``-`` belongs to a number only when it does not follow a word
    or number, so ``[r1-4]`` yields ``r1``, ``-``, ``4``.
    """

    tokens: List[str] = []
    position = 0
    text = text.strip()
    while position < len(text):
        match = _TOKEN.match(text, position)
        if match is None or match.end() == position:
            break
        position = match.end()
        number = match.group("number")
        if number is not None:
            if number.startswith("-") and tokens and _is_value_token(tokens[-1]):
                tokens.extend(["-", number[1:]])
            else:
                tokens.append(number)
            continue
        tokens.append(match.group("word") or match.group("punct"))
    return tuple(tokens)


def _is_value_token(token: str) -> bool:
    return bool(token) and (token[0].isalnum() or token[0] in "_.$%")


def parse_literal(token: str) -> Optional[int]:
    """Return the integer spelled by ``token`` or ``None`` for non-numbers."""

    match = _LITERAL.match(token)
    if match is None:
        return None
    if match.group("hex") is not None:
        value = int(match.group("hex"), 16)
    elif match.group("bin") is not None:
        value = int(match.group("bin"), 2)
    elif match.group("hsuffix") is not None:
        value = int(match.group("hsuffix"), 16)
    else:
        value = int(match.group("dec"), 10)
    return -value if match.group("sign") else value


def format_operands(tokens: Iterable[str]) -> str:
    out: List[str] = []
    previous: Optional[str] = None
    for token in tokens:
        if previous is not None and _is_value_token(previous) and _is_value_token(token):
            out.append(" ")
        out.append(token)
        previous = token
    return "".join(out)


class FieldKind(Enum):
    IMMEDIATE = "imm"
    REGISTER = "reg"

    @property
    def letter(self) -> str:
        return self.value[0]


@dataclass(frozen=True)
class OperandField:
    """A generalised operand bound to a bit range of the owning pattern.

    ``token_index`` is the position in the operand token list the field
    replaces.  Register fields carry their ``(value, register)`` mapping in
    value order; ``attach_group`` is filled in once groups are computed.
    """

    kind: FieldKind
    bit_range: BitRange
    token_index: int
    signed: bool = False
    mapping: Tuple[Tuple[int, str], ...] = ()
    attach_group: Optional[int] = None

    @property
    def placeholder(self) -> str:
        return f"<{self.kind.value}{self.bit_range.start}:{self.bit_range.stop}>"

    @property
    def width(self) -> int:
        return self.bit_range.width

    def register_for(self, value: int) -> Optional[str]:
        for encoded, name in self.mapping:
            if encoded == value:
                return name
        return None

    def accepts(self, value: int) -> bool:
        if self.kind is FieldKind.REGISTER:
            return self.register_for(value) is not None
        return 0 <= value < (1 << self.width)


@dataclass(frozen=True)
class SourceRecord:
    """A raw input line absorbed into an entry."""

    ordinal: int
    text: str
    pattern_text: str
    line_number: Optional[int] = None


@dataclass(frozen=True)
class InstructionEntry:
    """One concrete or generalised instruction encoding.

    Raw entries have no fields.  Combined entries replace the varying
    operand token and the varying bit range with the placeholder of the new
    :class:`OperandField`; ``ordinal`` is the lowest source ordinal absorbed
    so output order stays stable across runs.
    """

    mnemonic: str
    operands: Tuple[str, ...]
    pattern: BitPattern
    ordinal: int
    fields: Tuple[OperandField, ...] = ()
    sources: Tuple[SourceRecord, ...] = field(default=(), compare=False)

    @property
    def width(self) -> int:
        return self.pattern.width

    @property
    def key(self) -> Tuple[str, BitPattern, Tuple[str, ...]]:
        return (self.mnemonic, self.pattern, self.operands)

    def syntax(self, names: Optional[Mapping[str, str]] = None) -> str:
        """Render the instruction text, naming fields via ``names``.

        ``names`` maps field placeholders to display names; placeholders
        without a name render as themselves.
        """

        names = names or {}
        tokens = [names.get(token, token) for token in self.operands]
        if not tokens:
            return self.mnemonic
        return f"{self.mnemonic} {format_operands(tokens)}"

    def letters(self) -> Dict[str, str]:
        return {f.placeholder: f.kind.letter for f in self.fields}

    def opcode_text(self) -> str:
        return self.pattern.render(self.letters())

    def with_fields(self, fields: Sequence[OperandField]) -> "InstructionEntry":
        return replace(self, fields=tuple(fields))

    def covers(self, raw: "InstructionEntry") -> bool:
        """Return ``True`` when some legal field assignment reproduces ``raw``.

        Literal positions must agree bit for bit, every field must accept
        the value ``raw`` carries on its range, register fields must name the
        register ``raw`` spells, and every other operand token must match.
        """

        if raw.mnemonic != self.mnemonic or raw.width != self.width:
            return False
        if len(raw.operands) != len(self.operands):
            return False
        for position in self.pattern.literal_positions():
            if raw.pattern.bits[position] != self.pattern.bits[position]:
                return False
        bound = {f.token_index: f for f in self.fields}
        for index, token in enumerate(self.operands):
            operand_field = bound.get(index)
            if operand_field is None:
                if raw.operands[index] != token:
                    return False
                continue
            value = raw.pattern.value(operand_field.bit_range)
            if value is None or not operand_field.accepts(value):
                return False
            if operand_field.kind is FieldKind.REGISTER:
                name = operand_field.register_for(value)
                if name is None or name.lower() != raw.operands[index].lower():
                    return False
        return True
