# wgalib/models/record.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Protocol, Tuple, Union

from .strand import Strand

if TYPE_CHECKING:
    from ..formats.cigar import CigarRun

__all__ = ["RecStat", "AlignRecord", "natural_key", "sort_records"]


@dataclass(slots=True)
class RecStat:
    """
    Aggregate alignment counts (all in bases).

      match_count     columns with the same base on both rows
      mismatch_count  columns with different bases
      ins_count       bases present in the query only (gap on target)
      del_count       bases present in the target only (gap on query)
    """
    match_count: int = 0
    mismatch_count: int = 0
    ins_count: int = 0
    del_count: int = 0

    @property
    def block_length(self) -> int:
        return self.match_count + self.mismatch_count + self.ins_count + self.del_count

    @property
    def edit_distance(self) -> int:
        return self.mismatch_count + self.ins_count + self.del_count

    @property
    def target_span(self) -> int:
        return self.match_count + self.mismatch_count + self.del_count

    @property
    def query_span(self) -> int:
        return self.match_count + self.mismatch_count + self.ins_count


class AlignRecord(Protocol):
    """
    Capabilities shared by MAF blocks, PAF rows and chains.

    Query coordinates are reported on the forward strand, 0-based and
    half-open; the target is always reported on '+'.
    """

    @property
    def query_name(self) -> str: ...
    @property
    def query_length(self) -> int: ...
    @property
    def query_start(self) -> int: ...
    @property
    def query_end(self) -> int: ...
    @property
    def query_strand(self) -> Strand: ...
    @property
    def target_name(self) -> str: ...
    @property
    def target_length(self) -> int: ...
    @property
    def target_start(self) -> int: ...
    @property
    def target_end(self) -> int: ...
    @property
    def target_strand(self) -> Strand: ...
    @property
    def target_align_size(self) -> int: ...

    def cigar_runs(self) -> List["CigarRun"]: ...
    def cigar_string(self) -> str: ...
    def stat(self) -> RecStat: ...


_digits = re.compile(r"(\d+)")


def natural_key(name: str) -> Tuple[Union[int, str], ...]:
    """Split digit runs out of a name so 'chr2' orders before 'chr10'."""
    parts = _digits.split(name)
    # Even slots are text, odd slots are the captured digit runs.
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts))


def sort_records(records: Iterable[AlignRecord]) -> List[AlignRecord]:
    return sorted(records, key=lambda r: (natural_key(r.target_name), r.target_start))
