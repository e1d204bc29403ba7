"""Family grouping shared by the immediate and register passes.

A *family* is the set of entries that agree on everything except the
operand token at one position: same mnemonic, same operand count, same
width, same remaining tokens and the same already generalised fields.
Within a family the varying bit range is derived explicitly and checked for
contiguity before the pass specific bijection check decides whether the
family collapses into one entry.  Input order is never relied upon; entries
are sorted by ordinal only so the output is reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import chain
from typing import Callable, Dict, Generic, Hashable, List, Optional, Sequence, Tuple, TypeVar

from ..bits import BitRange, is_contiguous
from ..diagnostics import IDENTICAL_ENCODING, NON_CONTIGUOUS, CombineConflict
from ..instruction import InstructionEntry, OperandField

T = TypeVar("T")


@dataclass(frozen=True)
class Member(Generic[T]):
    """A family member together with the operand value found at the position."""

    entry: InstructionEntry
    operand: T


@dataclass(frozen=True)
class FieldDecision:
    """Result of the pass specific check: a field, a conflict, or neither."""

    field: Optional[OperandField] = None
    conflict_kind: Optional[str] = None
    message: str = ""


Classifier = Callable[[InstructionEntry, int], Optional[T]]
FieldBuilder = Callable[[Sequence[Member[T]], BitRange, int], FieldDecision]
FamilyKey = Tuple[str, int, int, Tuple[str, ...], Tuple[OperandField, ...]]


def family_key(entry: InstructionEntry, position: int) -> FamilyKey:
    blanked = entry.operands[:position] + ("",) + entry.operands[position + 1 :]
    return (entry.mnemonic, len(entry.operands), entry.width, blanked, entry.fields)


def varying_positions(entries: Sequence[InstructionEntry]) -> List[int]:
    first = entries[0].pattern.bits
    return [
        position
        for position in range(len(first))
        if any(entry.pattern.bits[position] != first[position] for entry in entries[1:])
    ]


def candidate_range(entries: Sequence[InstructionEntry]) -> Tuple[Optional[BitRange], str, str]:
    """Return the bit range the family varies on, or a rejection.

    The differing positions must be contiguous.  When every member carries
    the same hinted segment around them and that segment is entirely
    literal, the range widens to the whole segment.
    """

    positions = varying_positions(entries)
    if not positions:
        return None, IDENTICAL_ENCODING, "members share one encoding"

    if not is_contiguous(positions):
        rendered = ",".join(str(position) for position in positions)
        return None, NON_CONTIGUOUS, f"varying bits {rendered} are not contiguous"

    segments = {entry.pattern.segment_of(positions) for entry in entries}
    if len(segments) == 1:
        segment = segments.pop()
        if segment is not None and all(
            entry.pattern.value(segment) is not None for entry in entries
        ):
            return segment, "", ""
    return BitRange.spanning(positions), "", ""


def merge_members(members: Sequence[InstructionEntry], new_field: OperandField) -> InstructionEntry:
    base = min(members, key=lambda entry: entry.ordinal)
    operands = list(base.operands)
    operands[new_field.token_index] = new_field.placeholder
    fields = tuple(sorted(base.fields + (new_field,), key=lambda item: item.bit_range))
    sources = tuple(
        sorted(chain.from_iterable(entry.sources for entry in members), key=lambda src: src.ordinal)
    )
    return InstructionEntry(
        mnemonic=base.mnemonic,
        operands=tuple(operands),
        pattern=base.pattern.bind(new_field.bit_range, new_field.placeholder),
        ordinal=base.ordinal,
        fields=fields,
        sources=sources,
    )


def _try_family(
    stage: str,
    members: Sequence[Member[T]],
    position: int,
    build_field: FieldBuilder,
) -> Tuple[Optional[InstructionEntry], Optional[CombineConflict]]:
    entries = [member.entry for member in members]

    def conflict(kind: str, message: str) -> CombineConflict:
        return CombineConflict(
            stage=stage,
            kind=kind,
            message=f"operand {position}: {message}",
            ordinals=tuple(sorted(entry.ordinal for entry in entries)),
            mnemonic=entries[0].mnemonic,
        )

    bit_range, kind, message = candidate_range(entries)
    if bit_range is None:
        return None, conflict(kind, message)

    masked = {entry.pattern.masked(bit_range) for entry in entries}
    if len(masked) != 1:
        return None, conflict(NON_CONTIGUOUS, f"members differ outside {bit_range.describe()}")

    decision = build_field(members, bit_range, position)
    if decision.field is None:
        if decision.conflict_kind is None:
            return None, None
        return None, conflict(decision.conflict_kind, decision.message)
    return merge_members(entries, decision.field), None


def combine_at(
    entries: Sequence[InstructionEntry],
    position: int,
    stage: str,
    classify: Classifier,
    build_field: FieldBuilder,
) -> Tuple[List[InstructionEntry], bool, List[CombineConflict]]:
    """Run one family sweep over operand ``position``."""

    families: Dict[Hashable, List[Member]] = {}
    result: List[InstructionEntry] = []
    for entry in entries:
        operand = classify(entry, position)
        if operand is None:
            result.append(entry)
            continue
        families.setdefault(family_key(entry, position), []).append(Member(entry, operand))

    merged_any = False
    conflicts: List[CombineConflict] = []
    for members in families.values():
        if len(members) < 2:
            result.extend(member.entry for member in members)
            continue
        merged, rejected = _try_family(stage, members, position, build_field)
        if merged is None:
            result.extend(member.entry for member in members)
            if rejected is not None:
                conflicts.append(rejected)
            continue
        result.append(merged)
        merged_any = True

    result.sort(key=lambda entry: entry.ordinal)
    return result, merged_any, conflicts


def combine_by_operand(
    entries: Sequence[InstructionEntry],
    stage: str,
    classify: Classifier,
    build_field: FieldBuilder,
) -> Tuple[List[InstructionEntry], List[CombineConflict]]:
    """Sweep every operand position until no family merges.

    Only the rejections of the final sweep are returned: a family refused
    early may still be absorbed once another operand has been generalised.
    """

    current = sorted(entries, key=lambda entry: entry.ordinal)
    while True:
        changed = False
        conflicts: List[CombineConflict] = []
        arity = max((len(entry.operands) for entry in current), default=0)
        for position in range(arity):
            current, merged, rejected = combine_at(current, position, stage, classify, build_field)
            changed = changed or merged
            conflicts.extend(rejected)
        if not changed:
            return current, conflicts
