"""Shared register attach groups."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Sequence, Tuple

from .instruction import FieldKind, InstructionEntry

AttachKey = Tuple[int, Tuple[Tuple[int, str], ...]]


@dataclass(frozen=True)
class AttachGroup:
    """A value to register mapping shared by equivalent register fields."""

    id: int
    bit_width: int
    mapping: Tuple[Tuple[int, str], ...]

    def __post_init__(self) -> None:
        values = [value for value, _ in self.mapping]
        names = [name.lower() for _, name in self.mapping]
        if len(set(values)) != len(values) or len(set(names)) != len(names):
            raise ValueError(f"attach group {self.id} mapping is not a bijection")
        if any(value < 0 or value >= (1 << self.bit_width) for value in values):
            raise ValueError(f"attach group {self.id} value exceeds {self.bit_width} bits")

    @property
    def key(self) -> AttachKey:
        return (self.bit_width, self.mapping)

    @property
    def registers(self) -> Tuple[str, ...]:
        return tuple(name for _, name in self.mapping)

    def value_table(self) -> List[str]:
        """Register names indexed by encoding value, ``_`` marking unused values."""

        table = ["_"] * (1 << self.bit_width)
        for value, name in self.mapping:
            table[value] = name
        return table


class AttachGroupComputer:
    """Assign one attach group per distinct ``(width, mapping)`` pair.

    Groups are numbered in first-seen order while walking the entries by
    ordinal and their register fields by bit range, which keeps ids stable
    for identical input.
    """

    def compute(
        self, entries: Sequence[InstructionEntry]
    ) -> Tuple[List[InstructionEntry], List[AttachGroup]]:
        groups: Dict[AttachKey, AttachGroup] = {}
        result: List[InstructionEntry] = []
        for entry in sorted(entries, key=lambda item: item.ordinal):
            if not any(f.kind is FieldKind.REGISTER for f in entry.fields):
                result.append(entry)
                continue
            fields = []
            for operand_field in entry.fields:
                if operand_field.kind is not FieldKind.REGISTER:
                    fields.append(operand_field)
                    continue
                key: AttachKey = (operand_field.width, operand_field.mapping)
                group = groups.get(key)
                if group is None:
                    group = AttachGroup(len(groups), operand_field.width, operand_field.mapping)
                    groups[key] = group
                fields.append(replace(operand_field, attach_group=group.id))
            result.append(entry.with_fields(fields))
        return result, list(groups.values())
