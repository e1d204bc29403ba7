"""High level orchestration of the combining pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .attach import AttachGroup, AttachGroupComputer
from .combine import combine_duplicates, combine_immediates, combine_registers
from .config import ProcessorConfig
from .diagnostics import DiagnosticLog
from .instruction import InstructionEntry
from .model import InstructionModel
from .registers import Register
from .tokens import TokenFieldComputer, TokenTable

logger = logging.getLogger(__name__)

Progress = Callable[[str], None]


@dataclass
class PipelineStatistics:
    """Entry counts before and after every stage that ran."""

    counts: List[tuple] = field(default_factory=list)

    def register(self, stage: str, before: int, after: int) -> None:
        self.counts.append((stage, before, after))

    def describe(self) -> str:
        return " ".join(f"{stage}={before}->{after}" for stage, before, after in self.counts)


@dataclass
class ProcessorModule:
    """Everything the serializer needs, handed over read-only."""

    config: ProcessorConfig
    entries: List[InstructionEntry]
    attach_groups: List[AttachGroup]
    tokens: TokenTable
    registers: List[Register]
    diagnostics: DiagnosticLog
    statistics: PipelineStatistics


class GenerationPipeline:
    """Run the five stages over an :class:`InstructionModel`.

    The stages are explicit function calls in a fixed order; each consumes
    the complete output of the previous one.  When the configuration asks
    to skip combining only attach group and token layout computation run.
    """

    def __init__(self, model: InstructionModel, *, progress: Optional[Progress] = None) -> None:
        self.model = model
        self.progress = progress or (lambda message: None)
        self.statistics = PipelineStatistics()

    def run(self) -> ProcessorModule:
        model = self.model
        catalog = model.catalog
        if catalog is None:
            raise RuntimeError("pipeline run on a released model")
        diagnostics = model.diagnostics
        spellings = catalog.spellings(token for entry in model.entries for token in entry.operands)

        if not model.config.skip_instruction_combining:
            self.progress("Combining duplicate instructions")
            self._apply("duplicates", lambda entries: combine_duplicates(entries, diagnostics))

            self.progress("Combining immediate instructions")
            self._apply("immediates", lambda entries: combine_immediates(entries, diagnostics))

            self.progress("Combining register instructions")
            self._apply(
                "registers",
                lambda entries: combine_registers(entries, catalog, diagnostics, spellings),
            )

        self.progress("Computing attach registers")
        entries, groups = AttachGroupComputer().compute(model.entries)
        model.replace_entries(entries)

        self.progress("Computing token instructions")
        tokens = TokenFieldComputer(diagnostics).compute(model.entries)

        names: List[object] = [token for entry in model.entries for token in entry.operands]
        names.extend(name for group in groups for name in group.registers)
        registers = catalog.find_used(names, spellings)

        logger.info("pipeline finished: %s", self.statistics.describe())
        return ProcessorModule(
            config=model.config,
            entries=list(model.entries),
            attach_groups=groups,
            tokens=tokens,
            registers=registers,
            diagnostics=diagnostics,
            statistics=self.statistics,
        )

    def _apply(self, stage: str, combine: Callable[[List[InstructionEntry]], List[InstructionEntry]]) -> None:
        before = len(self.model.entries)
        combined = combine(self.model.entries)
        self.model.replace_entries(combined)
        self.statistics.register(stage, before, len(combined))
        logger.info("%s: %d -> %d entries", stage, before, len(combined))
