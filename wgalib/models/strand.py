# wgalib/models/strand.py
from __future__ import annotations

from enum import Enum

from ..errors import UnknownStrandSymbol

__all__ = ["Strand", "forward_coords", "reverse_coords"]


class Strand(str, Enum):
    POSITIVE = "+"
    NEGATIVE = "-"

    @classmethod
    def from_symbol(cls, symbol: str) -> "Strand":
        if symbol == "+":
            return cls.POSITIVE
        if symbol == "-":
            return cls.NEGATIVE
        raise UnknownStrandSymbol(f"unknown strand symbol {symbol!r}")

    def __str__(self) -> str:
        return self.value


def forward_coords(start: int, align_size: int, size: int, strand: Strand) -> tuple[int, int]:
    """
    Convert a strand-relative interval to forward-strand (start, end).

    MAF and Chain count '-' strand coordinates from the end of the
    reverse-complemented sequence; PAF always uses forward coordinates.
    """
    if strand is Strand.NEGATIVE:
        return size - start - align_size, size - start
    return start, start + align_size


# The transform is its own inverse for a fixed align_size.
reverse_coords = forward_coords
