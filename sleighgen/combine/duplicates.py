"""Pass 1: collapse exact duplicate entries."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from typing import DefaultDict, Dict, Iterable, List, Optional, Tuple

from ..bits import BitPattern
from ..diagnostics import AMBIGUOUS_ENCODING, CombineConflict, DiagnosticLog
from ..instruction import InstructionEntry

STAGE = "duplicates"


def combine_duplicates(
    entries: Iterable[InstructionEntry],
    diagnostics: Optional[DiagnosticLog] = None,
) -> List[InstructionEntry]:
    """Return one entry per ``(mnemonic, pattern, operands)`` key.

    Each surviving entry keeps the lowest ordinal of the entries it absorbed.
    Entries sharing a pattern while spelling a different instruction are
    kept apart and reported as ambiguous encodings.
    """

    kept: Dict[Tuple[str, BitPattern, Tuple[str, ...]], InstructionEntry] = {}
    for entry in sorted(entries, key=lambda item: item.ordinal):
        existing = kept.get(entry.key)
        if existing is None:
            kept[entry.key] = entry
            continue
        kept[entry.key] = replace(existing, sources=existing.sources + entry.sources)

    result = list(kept.values())
    for conflict in find_ambiguous_encodings(result):
        if diagnostics is not None:
            diagnostics.record(conflict)
    return result


def find_ambiguous_encodings(entries: Iterable[InstructionEntry]) -> List[CombineConflict]:
    by_pattern: DefaultDict[BitPattern, List[InstructionEntry]] = defaultdict(list)
    for entry in entries:
        by_pattern[entry.pattern].append(entry)

    conflicts: List[CombineConflict] = []
    for group in by_pattern.values():
        if len(group) < 2:
            continue
        spellings = " / ".join(entry.syntax() for entry in group)
        conflicts.append(
            CombineConflict(
                stage=STAGE,
                kind=AMBIGUOUS_ENCODING,
                message=f"share encoding {group[0].opcode_text()}: {spellings}",
                ordinals=tuple(entry.ordinal for entry in group),
                mnemonic=group[0].mnemonic,
            )
        )
    return conflicts
