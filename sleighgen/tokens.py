"""Token container and field layout derivation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .bits import BitRange
from .diagnostics import FIELD_OUT_OF_RANGE, TOKEN_WIDTH, CombineConflict, DiagnosticLog
from .instruction import FieldKind, InstructionEntry

logger = logging.getLogger(__name__)

STAGE = "tokens"

OPCODE_ROLE = "op"

FieldKey = Tuple[BitRange, bool, str, Optional[int]]


@dataclass(frozen=True)
class TokenField:
    """A named bit range declared once inside a token container."""

    token_width: int
    name: str
    bit_range: BitRange
    signed: bool = False
    role: str = OPCODE_ROLE
    attach_group: Optional[int] = None

    @property
    def lsb(self) -> int:
        return self.bit_range.lsb(self.token_width)

    @property
    def msb(self) -> int:
        return self.bit_range.msb(self.token_width)

    @property
    def key(self) -> FieldKey:
        return (self.bit_range, self.signed, self.role, self.attach_group)


@dataclass
class TokenContainer:
    width: int
    name: str
    fields: List[TokenField] = field(default_factory=list)

    def lookup(self, key: FieldKey) -> Optional[TokenField]:
        for token_field in self.fields:
            if token_field.key == key:
                return token_field
        return None


@dataclass(frozen=True)
class Constraint:
    """One term of a constructor's bit pattern; ``value`` is ``None`` for operands."""

    field: TokenField
    value: Optional[int] = None


@dataclass(frozen=True)
class InstructionLayout:
    entry: InstructionEntry
    token: TokenContainer
    constraints: Tuple[Constraint, ...]
    operand_names: Mapping[str, str]

    def display(self) -> str:
        return self.entry.syntax(self.operand_names)


@dataclass
class TokenTable:
    containers: Dict[int, TokenContainer] = field(default_factory=dict)
    layouts: List[InstructionLayout] = field(default_factory=list)
    rejected: List[InstructionEntry] = field(default_factory=list)

    def all_fields(self) -> List[TokenField]:
        return [f for container in self.containers.values() for f in container.fields]


def _field_keys(entry: InstructionEntry) -> List[Tuple[FieldKey, Optional[int], Optional[str]]]:
    """Return ``(key, literal value, placeholder)`` for every term of ``entry``."""

    terms = []
    for run in entry.pattern.literal_runs():
        terms.append(((run, False, OPCODE_ROLE, None), entry.pattern.value(run), None))
    for operand_field in entry.fields:
        key = (
            operand_field.bit_range,
            operand_field.signed,
            operand_field.kind.value,
            operand_field.attach_group if operand_field.kind is FieldKind.REGISTER else None,
        )
        terms.append((key, None, operand_field.placeholder))
    terms.sort(key=lambda term: term[0][0])
    return terms


def _base_name(key: FieldKey, width: int, qualify: bool) -> str:
    bit_range, signed, role, _ = key
    prefix = f"s{role}" if signed else role
    if qualify:
        prefix = f"{prefix}{width}"
    return f"{prefix}_{bit_range.lsb(width)}_{bit_range.msb(width)}"


class TokenFieldComputer:
    """Derive the token containers and shared field declarations.

    One container is created per distinct pattern width.  Within it every
    distinct ``(range, signedness, role, attach group)`` is declared once and
    shared by all constructors that use it; literal runs become ``op`` fields
    whose constraints carry the literal value.
    """

    def __init__(self, diagnostics: Optional[DiagnosticLog] = None) -> None:
        self.diagnostics = diagnostics

    def compute(self, entries: Sequence[InstructionEntry]) -> TokenTable:
        ordered = sorted(entries, key=lambda item: item.ordinal)
        accepted: List[InstructionEntry] = []
        rejected: List[InstructionEntry] = []
        keys_by_width: Dict[int, List[FieldKey]] = {}

        for entry in ordered:
            bad = [f for f in entry.fields if not f.bit_range.fits(entry.width)]
            if bad:
                self._reject(entry, bad[0].bit_range)
                rejected.append(entry)
                continue
            accepted.append(entry)
            keys = keys_by_width.setdefault(entry.width, [])
            for key, _, _ in _field_keys(entry):
                if key not in keys:
                    keys.append(key)

        qualify = len(keys_by_width) > 1
        containers: Dict[int, TokenContainer] = {}
        for width in sorted(keys_by_width):
            container = TokenContainer(width, f"instr{width}")
            used = set()
            for key in sorted(keys_by_width[width], key=lambda k: (k[2], k[0], k[1], k[3] or 0)):
                name = _base_name(key, width, qualify)
                if name in used:
                    suffix = 1
                    while f"{name}_{suffix}" in used:
                        suffix += 1
                    name = f"{name}_{suffix}"
                used.add(name)
                bit_range, signed, role, group = key
                container.fields.append(TokenField(width, name, bit_range, signed, role, group))
            container.fields.sort(key=lambda f: (f.bit_range, f.role, f.name))
            containers[width] = container
            if width % 8:
                members = [entry for entry in accepted if entry.width == width]
                self._record(
                    CombineConflict(
                        stage=STAGE,
                        kind=TOKEN_WIDTH,
                        message=f"token width {width} is not a whole number of bytes",
                        ordinals=tuple(entry.ordinal for entry in members),
                        mnemonic=members[0].mnemonic,
                    )
                )

        table = TokenTable(containers=containers, rejected=rejected)
        for entry in accepted:
            container = containers[entry.width]
            constraints = []
            names: Dict[str, str] = {}
            for key, value, placeholder in _field_keys(entry):
                token_field = container.lookup(key)
                assert token_field is not None
                constraints.append(Constraint(token_field, value))
                if placeholder is not None:
                    names[placeholder] = token_field.name
            table.layouts.append(InstructionLayout(entry, container, tuple(constraints), names))
        return table

    def _reject(self, entry: InstructionEntry, bit_range: BitRange) -> None:
        self._record(
            CombineConflict(
                stage=STAGE,
                kind=FIELD_OUT_OF_RANGE,
                message=f"field {bit_range.describe()} exceeds width {entry.width}",
                ordinals=(entry.ordinal,),
                mnemonic=entry.mnemonic,
            )
        )

    def _record(self, conflict: CombineConflict) -> None:
        if self.diagnostics is not None:
            self.diagnostics.record(conflict)
        else:
            logger.error("%s", conflict.describe())
