"""Run configuration for a single processor module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .errors import ConfigError

ENDIANNESS = ("big", "little")


@dataclass(frozen=True)
class ProcessorConfig:
    """Parameters steering combining and serialisation.

    The defaults mirror the historical command line tool so a configuration
    built from nothing but an input file still yields a loadable module.
    """

    processor_name: str = "MyProc"
    processor_family: str = "MyProcFamily"
    endian: str = "big"
    alignment: int = 1
    bitness: int = 32
    omit_opcodes: bool = False
    omit_example_instructions: bool = False
    skip_instruction_combining: bool = False
    print_registers_only: bool = False
    additional_registers: Tuple[str, ...] = field(default_factory=tuple)

    def validate(self) -> "ProcessorConfig":
        if self.endian not in ENDIANNESS:
            raise ConfigError("Processor endianness must be either big or little")
        if self.alignment < 1:
            raise ConfigError(f"alignment must be positive, got {self.alignment}")
        if self.bitness < 1:
            raise ConfigError(f"bitness must be positive, got {self.bitness}")
        for label, value in (
            ("processor name", self.processor_name),
            ("processor family", self.processor_family),
        ):
            if not value or any(ch.isspace() or ch in "/\\" for ch in value):
                raise ConfigError(f"invalid {label}: {value!r}")
        return self

    @property
    def address_size(self) -> int:
        """Size in bytes of an address in the default space."""

        return max(1, (self.bitness + 7) // 8)

    @property
    def language_id(self) -> str:
        endian = "BE" if self.endian == "big" else "LE"
        return f"{self.processor_name}:{endian}:{self.bitness}:default"
