"""Pass 3: generalise register operands into register fields."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..bits import BitRange
from ..diagnostics import NOT_BIJECTIVE, UNKNOWN_REGISTER, DiagnosticLog
from ..instruction import FieldKind, InstructionEntry, OperandField, parse_literal
from ..registers import Register, RegisterCatalog
from .families import FieldDecision, Member, combine_by_operand

STAGE = "registers"

# Unknown words stay in the family so a half-known family can be reported.
Operand = Union[Register, str]


def _classifier(
    catalog: RegisterCatalog, spellings: Mapping[str, str]
) -> Callable[[InstructionEntry, int], Optional[Operand]]:
    def classify(entry: InstructionEntry, position: int) -> Optional[Operand]:
        if position >= len(entry.operands):
            return None
        token = entry.operands[position]
        register = catalog.lookup(token)
        if register is not None:
            return replace(register, name=spellings.get(register.name, token))
        if (token[:1].isalpha() or token[:1] in "_.$%") and parse_literal(token) is None:
            return token
        return None

    return classify


def _build_field(members: Sequence[Member[Operand]], bit_range: BitRange, position: int) -> FieldDecision:
    if not any(isinstance(m.operand, Register) for m in members):
        # No member names a known register: not a register operand.
        return FieldDecision()
    unknown = sorted({m.operand for m in members if not isinstance(m.operand, Register)})
    if unknown:
        return FieldDecision(
            conflict_kind=UNKNOWN_REGISTER,
            message="not in register catalog: " + " ".join(unknown),
        )

    mapping: Dict[int, str] = {}
    for member in members:
        value = member.entry.pattern.value(bit_range)
        name = member.operand.name
        if value in mapping:
            return FieldDecision(
                conflict_kind=NOT_BIJECTIVE,
                message=f"value {value} maps to both {mapping[value]} and {name}",
            )
        mapping[value] = name

    names = [name.lower() for name in mapping.values()]
    if len(set(names)) != len(names):
        return FieldDecision(
            conflict_kind=NOT_BIJECTIVE,
            message="a register appears under more than one encoding",
        )

    return FieldDecision(
        field=OperandField(
            kind=FieldKind.REGISTER,
            bit_range=bit_range,
            token_index=position,
            mapping=tuple(sorted(mapping.items())),
        )
    )


def combine_registers(
    entries: Sequence[InstructionEntry],
    catalog: RegisterCatalog,
    diagnostics: Optional[DiagnosticLog] = None,
    spellings: Optional[Mapping[str, str]] = None,
) -> List[InstructionEntry]:
    """Collapse families whose varying operand is a catalog register.

    Every member's value on the varying range must select a distinct
    register, and that register must be the one the member's operand token
    spells.  Registers are named by ``spellings`` (catalog name to listing
    spelling), defaulting to their first spelling in ``entries`` so equal
    mappings compare equal whatever case the listing uses.  Failing
    families keep their entries and are reported.
    """

    if spellings is None:
        ordered = sorted(entries, key=lambda entry: entry.ordinal)
        spellings = catalog.spellings(token for entry in ordered for token in entry.operands)
    classify = _classifier(catalog, spellings)
    combined, conflicts = combine_by_operand(entries, STAGE, classify, _build_field)
    if diagnostics is not None:
        diagnostics.extend(conflicts)
    return combined
