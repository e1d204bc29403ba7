"""Recoverable diagnostics recorded while combining instructions."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

AMBIGUOUS_ENCODING = "ambiguous-encoding"
IDENTICAL_ENCODING = "identical-encoding"
NON_CONTIGUOUS = "non-contiguous"
NOT_BIJECTIVE = "not-bijective"
UNKNOWN_REGISTER = "unknown-register"
FIELD_OUT_OF_RANGE = "field-out-of-range"
TOKEN_WIDTH = "token-width"


@dataclass(frozen=True)
class CombineConflict:
    """A merge candidate that was refused; the entries stay unmerged."""

    stage: str
    kind: str
    message: str
    ordinals: Tuple[int, ...]
    mnemonic: str = ""

    def describe(self) -> str:
        ordinals = ",".join(str(ordinal) for ordinal in self.ordinals)
        return f"[{self.stage}] {self.kind}: {self.mnemonic} {self.message} (entries {ordinals})"


class DiagnosticLog:
    """Ordered collection of :class:`CombineConflict` records."""

    def __init__(self) -> None:
        self._entries: List[CombineConflict] = []

    def record(self, conflict: CombineConflict) -> None:
        self._entries.append(conflict)
        logger.warning("%s", conflict.describe())

    def extend(self, conflicts: List[CombineConflict]) -> None:
        for conflict in conflicts:
            self.record(conflict)

    def __iter__(self) -> Iterator[CombineConflict]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def filter(self, kind: str) -> Tuple[CombineConflict, ...]:
        return tuple(entry for entry in self._entries if entry.kind == kind)

    def for_stage(self, stage: str) -> Tuple[CombineConflict, ...]:
        return tuple(entry for entry in self._entries if entry.stage == stage)

    def summary(self) -> Dict[str, int]:
        return dict(Counter(entry.kind for entry in self._entries))

    def describe(self) -> str:
        counts = self.summary()
        lines = ["Diagnostics:"]
        lines.append(
            "  summary="
            + (" ".join(f"{kind}={count}" for kind, count in sorted(counts.items())) or "none")
        )
        for entry in self._entries:
            lines.append("  " + entry.describe())
        return "\n".join(lines)

    def clear(self) -> None:
        self._entries.clear()
