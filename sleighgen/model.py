"""Working aggregate threaded through the combining pipeline."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import ProcessorConfig
from .diagnostics import DiagnosticLog
from .instruction import InstructionEntry
from .registers import Register, RegisterCatalog

logger = logging.getLogger(__name__)


class InstructionModel:
    """Instruction entries, the register catalog and the run configuration.

    The model is used as a context manager by the driver: leaving the
    ``with`` block releases the entries, diagnostics and catalog reference
    exactly once, whether the run finished, failed validation or raised in
    the middle of the pipeline.
    """

    def __init__(
        self,
        config: ProcessorConfig,
        catalog: RegisterCatalog,
        entries: Sequence[InstructionEntry] = (),
    ) -> None:
        self.config = config
        self.catalog: Optional[RegisterCatalog] = catalog
        self.entries: List[InstructionEntry] = list(entries)
        self.diagnostics = DiagnosticLog()
        self.released = False

    def __enter__(self) -> "InstructionModel":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def replace_entries(self, entries: Sequence[InstructionEntry]) -> None:
        self.entries = list(entries)

    def used_registers(self) -> List[Register]:
        """Catalog registers spelled by operand tokens, in first-seen order."""

        if self.catalog is None:
            return []
        return self.catalog.find_used(
            token for entry in self.entries for token in entry.operands
        )

    def release(self) -> None:
        if self.released:
            return
        logger.debug("releasing model with %d entries", len(self.entries))
        self.entries = []
        self.diagnostics = DiagnosticLog()
        self.catalog = None
        self.released = True
