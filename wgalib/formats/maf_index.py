# wgalib/formats/maf_index.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterator, List, TextIO, Union

from ..errors import (
    DuplicateSequenceName,
    EmptyInput,
    InconsistentRowOrder,
    MissingField,
    ParseError,
    SequenceNotIndexed,
)
from ..models.strand import Strand
from .maf import MafBlock, MafReader, slice_block

__all__ = [
    "Interval",
    "IndexEntry",
    "MafIndex",
    "build_index",
    "write_index",
    "load_index",
    "extract_region",
]

_log = logging.getLogger(__name__)


@dataclass(slots=True)
class Interval:
    """Row coordinates (its own strand convention) of one block, and where the block starts."""
    start: int
    end: int
    strand: Strand
    offset: int


@dataclass(slots=True)
class IndexEntry:
    intervals: List[Interval] = field(default_factory=list)
    size: int = 0
    ord: int = 0


MafIndex = Dict[str, IndexEntry]


def build_index(reader: MafReader) -> MafIndex:
    """
    One forward pass over a MAF source.

    Raises the first ParseError met, DuplicateSequenceName when a block
    holds a name twice, InconsistentRowOrder when a name changes row
    position between blocks, and EmptyInput when there are no blocks.
    """
    idx: MafIndex = {}
    n_blocks = 0
    while True:
        block = reader.read_block()
        if block is None:
            break
        if isinstance(block, ParseError):
            raise block
        offset = reader.block_offset
        n_blocks += 1

        seen: set[str] = set()
        for ord, row in enumerate(block.rows):
            if row.name in seen:
                raise DuplicateSequenceName(f"{row.name} appears twice in the block at byte {offset}")
            seen.add(row.name)

            entry = idx.get(row.name)
            if entry is None:
                entry = idx[row.name] = IndexEntry(size=row.size, ord=ord)
            elif entry.ord != ord:
                raise InconsistentRowOrder(
                    f"{row.name} is row {ord} in the block at byte {offset} but row {entry.ord} earlier"
                )
            entry.intervals.append(Interval(row.start, row.end, row.strand, offset))

    if not idx:
        raise EmptyInput("no MAF blocks found")
    _log.info("indexed %d blocks over %d sequences", n_blocks, len(idx))
    return idx


# -------------------------------------------------------------------
# Persistence
# -------------------------------------------------------------------

def _to_jsonable(index: MafIndex) -> dict:
    out = {}
    for name, entry in index.items():
        d = asdict(entry)
        for iv in d["intervals"]:
            iv["strand"] = iv["strand"].value
        out[name] = d
    return out


def write_index(index: MafIndex, sink: Union[str, TextIO]) -> None:
    """
    Persist an index as JSON. With a path, the file is written to a
    temporary name and renamed, so a failed write leaves no partial index.
    """
    data = _to_jsonable(index)
    if isinstance(sink, str):
        tmp = sink + ".tmp"
        try:
            with open(tmp, "wt", encoding="utf-8") as out:
                json.dump(data, out)
            os.replace(tmp, sink)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return
    json.dump(data, sink)


def load_index(source: Union[str, TextIO]) -> MafIndex:
    try:
        if isinstance(source, str):
            with open(source, "rt", encoding="utf-8") as fh:
                data = json.load(fh)
        else:
            data = json.load(source)
    except json.JSONDecodeError as e:
        raise ParseError(f"index is not valid JSON: {e}") from None

    idx: MafIndex = {}
    for name, d in data.items():
        try:
            intervals = [
                Interval(iv["start"], iv["end"], Strand.from_symbol(iv["strand"]), iv["offset"])
                for iv in d["intervals"]
            ]
            idx[name] = IndexEntry(intervals=intervals, size=d["size"], ord=d["ord"])
        except KeyError as e:
            raise MissingField(f"index entry {name!r} lacks {e.args[0]!r}") from None
    return idx


# -------------------------------------------------------------------
# Consuming the index
# -------------------------------------------------------------------

def extract_region(maf_path: str, index: MafIndex, name: str, start: int, end: int) -> Iterator[MafBlock]:
    """
    Yield the blocks overlapping name:[start, end), each sliced to the
    overlap on that sequence's row. Coordinates follow the row's strand
    convention, as stored in the index.
    """
    entry = index.get(name)
    if entry is None:
        raise SequenceNotIndexed(f"{name} is not in the index")
    with open(maf_path, "rb") as fh:
        for iv in entry.intervals:
            lo, hi = max(start, iv.start), min(end, iv.end)
            if lo >= hi:
                continue
            fh.seek(iv.offset)
            block = MafReader(fh, offset=iv.offset, read_header=False).read_block()
            if block is None:
                raise MissingField(f"no block at byte {iv.offset} of {maf_path}")
            if isinstance(block, ParseError):
                raise block
            yield slice_block(block, lo, hi, ord=entry.ord)
