"""Register catalog used to recognise register operands."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import RegisterInitError

REGISTER_NAME = re.compile(r"^[A-Za-z_.$%][\w.$%]*$")


@dataclass(frozen=True)
class Register:
    name: str
    bit_width: int

    @property
    def byte_size(self) -> int:
        return max(1, (self.bit_width + 7) // 8)


def _family(prefix: str, count: int, width: Optional[int] = None) -> List[Tuple[str, Optional[int]]]:
    return [(f"{prefix}{index}", width) for index in range(count)]


# ``None`` widths take the processor bitness.
BASELINE_REGISTERS: Tuple[Tuple[str, Optional[int]], ...] = tuple(
    _family("r", 32)
    + _family("x", 32)
    + _family("w", 32, 32)
    + _family("a", 8)
    + _family("d", 8)
    + _family("f", 32, 64)
    + [
        ("sp", None),
        ("fp", None),
        ("lr", None),
        ("pc", None),
        ("ip", None),
        ("sr", None),
        ("ccr", 8),
        ("acc", None),
        # x86 general purpose registers
        ("al", 8), ("ah", 8), ("bl", 8), ("bh", 8),
        ("cl", 8), ("ch", 8), ("dl", 8), ("dh", 8),
        ("ax", 16), ("bx", 16), ("cx", 16), ("dx", 16),
        ("si", 16), ("di", 16), ("bp", 16),
        ("eax", 32), ("ebx", 32), ("ecx", 32), ("edx", 32),
        ("esi", 32), ("edi", 32), ("ebp", 32), ("esp", 32),
        ("rax", 64), ("rbx", 64), ("rcx", 64), ("rdx", 64),
        ("rsi", 64), ("rdi", 64), ("rbp", 64), ("rsp", 64),
        # 8-bit accumulator machines
        ("a", 8), ("b", 8), ("c", 8), ("d", 8), ("e", 8), ("h", 8), ("l", 8),
        ("af", 16), ("bc", 16), ("de", 16), ("hl", 16), ("ix", 16), ("iy", 16),
        ("x", 8), ("y", 8),
    ]
)


class RegisterCatalog(Mapping[str, Register]):
    """Immutable, case-insensitive lookup of known register symbols.

    The catalog is built once per run from the baseline table plus the
    caller supplied names and is shared read-only by every combining pass.
    Lookups ignore case but always answer with the canonical spelling used
    when the register was declared.
    """

    def __init__(self, registers: Iterable[Register]) -> None:
        table: Dict[str, Register] = {}
        for register in registers:
            if not REGISTER_NAME.match(register.name):
                raise RegisterInitError(f"invalid register name: {register.name!r}")
            if register.bit_width < 1:
                raise RegisterInitError(
                    f"register {register.name} has invalid width {register.bit_width}"
                )
            key = register.name.lower()
            if key in table:
                raise RegisterInitError(
                    f"register {register.name} collides with {table[key].name}"
                )
            table[key] = register
        self._registers: Mapping[str, Register] = MappingProxyType(table)

    @classmethod
    def build(cls, additional: Sequence[str] = (), bitness: int = 32) -> "RegisterCatalog":
        """Return the baseline catalog extended with ``additional`` names."""

        if bitness < 1:
            raise RegisterInitError(f"bitness must be positive, got {bitness}")
        registers = [
            Register(name, width if width is not None else bitness)
            for name, width in BASELINE_REGISTERS
        ]
        registers.extend(Register(name.strip(), bitness) for name in additional)
        return cls(registers)

    def lookup(self, token: str) -> Optional[Register]:
        return self._registers.get(token.lower())

    def __getitem__(self, name: str) -> Register:
        register = self.lookup(name)
        if register is None:
            raise KeyError(name)
        return register

    def __iter__(self) -> Iterator[str]:
        return (register.name for register in self._registers.values())

    def __len__(self) -> int:
        return len(self._registers)

    def spellings(self, tokens: Iterable[object]) -> Dict[str, str]:
        """Map each catalog register to the first spelling found in ``tokens``."""

        seen: Dict[str, str] = {}
        for token in tokens:
            if not isinstance(token, str):
                continue
            register = self.lookup(token)
            if register is not None and register.name not in seen:
                seen[register.name] = token
        return seen

    def find_used(
        self, tokens: Iterable[object], spellings: Optional[Mapping[str, str]] = None
    ) -> List[Register]:
        """Return the catalog registers spelled by ``tokens`` in first-seen order.

        Each register is named by ``spellings`` when given, otherwise by the
        first spelling found in ``tokens``, so generated names match the
        listing.
        """

        names = self.spellings(tokens)
        if spellings is not None:
            names.update((key, value) for key, value in spellings.items() if key in names)
        return [replace(self._registers[key.lower()], name=name) for key, name in names.items()]

    def describe(self, registers: Optional[Iterable[Register]] = None) -> str:
        selected = list(registers) if registers is not None else list(self._registers.values())
        return " ".join(register.name for register in selected)
