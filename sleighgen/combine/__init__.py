"""The three combining passes."""

from .duplicates import combine_duplicates
from .immediates import combine_immediates
from .registers import combine_registers

__all__ = [
    "combine_duplicates",
    "combine_immediates",
    "combine_registers",
]
