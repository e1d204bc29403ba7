"""Pass 2: generalise literal operands into immediate fields."""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..bits import BitRange
from ..diagnostics import NOT_BIJECTIVE, DiagnosticLog
from ..instruction import FieldKind, InstructionEntry, OperandField, parse_literal
from .families import FieldDecision, Member, combine_by_operand

STAGE = "immediates"


def _classify(entry: InstructionEntry, position: int) -> Optional[int]:
    if position >= len(entry.operands):
        return None
    return parse_literal(entry.operands[position])


def _build_field(members: Sequence[Member[int]], bit_range: BitRange, position: int) -> FieldDecision:
    encoded = [member.entry.pattern.value(bit_range) for member in members]
    literals = [member.operand for member in members]

    # Two members on one value would be duplicates or contradictory data.
    if len(set(encoded)) != len(encoded):
        return FieldDecision(
            conflict_kind=NOT_BIJECTIVE,
            message=f"repeated encoding on {bit_range.describe()}",
        )
    if len(set(literals)) != len(literals):
        return FieldDecision(
            conflict_kind=NOT_BIJECTIVE,
            message="repeated literal value for distinct encodings",
        )

    return FieldDecision(
        field=OperandField(
            kind=FieldKind.IMMEDIATE,
            bit_range=bit_range,
            token_index=position,
            signed=any(value < 0 for value in literals),
        )
    )


def combine_immediates(
    entries: Sequence[InstructionEntry],
    diagnostics: Optional[DiagnosticLog] = None,
) -> List[InstructionEntry]:
    """Collapse families differing only in one literal operand.

    The observed values need not cover the whole field: three members on a
    two bit range still become one two bit immediate, its legal domain being
    governed by the width.
    """

    combined, conflicts = combine_by_operand(entries, STAGE, _classify, _build_field)
    if diagnostics is not None:
        diagnostics.extend(conflicts)
    return combined
