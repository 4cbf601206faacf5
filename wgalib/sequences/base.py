# wgalib/sequences/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Protocol

__all__ = [
    "SequenceSource",
    "DictSequenceSource",
    "reverse_complement",
]


class SequenceSource(Protocol):
    """Random access to bases. Coordinates are 0-based, half-open, forward strand."""
    def has(self, name: str) -> bool: ...
    def length(self, name: str) -> int: ...
    def sequence(self, name: str, start: int, end: int) -> str: ...
    def ids(self) -> Iterable[str]: ...


_rc_table = str.maketrans("ACGTRYSWKMBDHVNacgtryswkmbdhvn",
                          "TGCAYRSWMKVHDBNtgcayrswmkvhdbn")

def reverse_complement(s: str) -> str:
    return s.translate(_rc_table)[::-1]


def _check_range(name: str, start: int, end: int, length: int) -> None:
    if start < 0 or end < start or end > length:
        raise ValueError(f"invalid range {name}:[{start}, {end}) for length {length}")


@dataclass
class DictSequenceSource:
    """
    Tiny in-memory source for tests:
      seqs: dict{name -> sequence_string}
    Raises KeyError for unknown names.
    """
    seqs: Dict[str, str]

    def has(self, name: str) -> bool:
        return name in self.seqs

    def length(self, name: str) -> int:
        return len(self.seqs[name])

    def ids(self) -> Iterable[str]:
        return self.seqs.keys()

    def sequence(self, name: str, start: int, end: int) -> str:
        s = self.seqs[name]
        _check_range(name, start, end, len(s))
        return s[start:end]
