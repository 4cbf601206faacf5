# wgalib/formats/paf.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Literal, Optional, TextIO, Union

from ..errors import InvalidNumber, MissingCigarTag, ParseError, UnexpectedFieldCount, UnknownStrandSymbol
from ..models.record import RecStat
from ..models.strand import Strand
from ..utils.textio import Sink, Source, as_lines, write_to_sink
from .cigar import CigarRun, parse_cigar, runs_to_string, stat_from_runs

__all__ = ["PafRecord", "parse_line", "decode", "encode", "DEFAULT_MAPQ"]

_log = logging.getLogger(__name__)

DEFAULT_MAPQ = 255
CIGAR_TAG = "cg:Z:"
EDIT_DISTANCE_TAG = "NM:i:"

_COLUMNS = (
    "query_name", "query_length", "query_start", "query_end", "strand",
    "target_name", "target_length", "target_start", "target_end",
    "matches", "block_length", "mapq",
)

Errors = Literal["strict", "skip", "yield"]

# -------------------------------------------------------------------
# Public data model
# -------------------------------------------------------------------

@dataclass(slots=True)
class PafRecord:
    """
    One PAF line. Coordinates are 0-based, half-open, forward strand.

    tags keeps the optional TAG:TYPE:VALUE columns verbatim and in order.
    """
    query_name: str
    query_length: int
    query_start: int
    query_end: int
    strand: Strand
    target_name: str
    target_length: int
    target_start: int
    target_end: int
    matches: int
    block_length: int
    mapq: int = DEFAULT_MAPQ
    tags: List[str] = field(default_factory=list)

    # ---------- tags ----------

    def tag(self, prefix: str) -> Optional[str]:
        """Value of the first tag starting with `prefix` (e.g. 'cg:Z:'), or None."""
        for t in self.tags:
            if t.startswith(prefix):
                return t[len(prefix):]
        return None

    def edit_distance(self) -> Optional[int]:
        value = self.tag(EDIT_DISTANCE_TAG)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            raise InvalidNumber(f"NM tag value {value!r} is not an integer") from None

    # ---------- AlignRecord ----------

    @property
    def query_strand(self) -> Strand:
        return self.strand

    @property
    def target_strand(self) -> Strand:
        return Strand.POSITIVE

    @property
    def target_align_size(self) -> int:
        return self.target_end - self.target_start

    def cigar_runs(self) -> List[CigarRun]:
        text = self.tag(CIGAR_TAG)
        if text is None:
            raise MissingCigarTag(f"{self.query_name} vs {self.target_name}: no cg:Z: tag")
        return parse_cigar(text)

    def cigar_string(self) -> str:
        return runs_to_string(self.cigar_runs())

    def stat(self) -> RecStat:
        return stat_from_runs(self.cigar_runs(), edit_distance=self.edit_distance())

    def to_line(self) -> str:
        cols = [
            self.query_name, str(self.query_length), str(self.query_start), str(self.query_end),
            self.strand.value,
            self.target_name, str(self.target_length), str(self.target_start), str(self.target_end),
            str(self.matches), str(self.block_length), str(self.mapq),
        ]
        cols.extend(self.tags)
        return "\t".join(cols)


# -------------------------------------------------------------------
# Parsing
# -------------------------------------------------------------------

def parse_line(line: str, line_no: Optional[int] = None) -> PafRecord:
    parts = line.rstrip("\r\n").split("\t")
    if len(parts) < len(_COLUMNS):
        raise UnexpectedFieldCount(
            f"PAF line has {len(parts)} columns; expected at least {len(_COLUMNS)}", line_no=line_no
        )

    values: dict = {}
    for name, raw in zip(_COLUMNS, parts):
        if name in ("query_name", "target_name"):
            values[name] = raw
        elif name == "strand":
            try:
                values[name] = Strand.from_symbol(raw)
            except UnknownStrandSymbol as e:
                raise UnknownStrandSymbol(str(e), line_no=line_no) from None
        else:
            try:
                values[name] = int(raw)
            except ValueError:
                raise InvalidNumber(f"{name} {raw!r} is not an integer", line_no=line_no) from None

    return PafRecord(tags=parts[len(_COLUMNS):], **values)


def decode(source: Source, *, errors: Errors = "strict") -> Iterator[Union[PafRecord, ParseError]]:
    """
    Stream PafRecord objects; '#' comments and blank lines are skipped.

    errors behaves as in wgalib.formats.maf.decode.
    """
    if errors not in ("strict", "skip", "yield"):
        raise ValueError("errors must be 'strict', 'skip' or 'yield'")
    for line_no, ln in enumerate(as_lines(source), start=1):
        if isinstance(ln, bytes):
            ln = ln.decode("utf-8")
        if not ln.strip() or ln.startswith("#"):
            continue
        try:
            rec = parse_line(ln, line_no)
        except ParseError as e:
            if errors == "strict":
                raise
            if errors == "skip":
                _log.warning("skipping PAF line: %s", e)
                continue
            yield e
            continue
        yield rec


def write_records(records: Iterable[PafRecord], out: TextIO) -> int:
    n = 0
    for r in records:
        out.write(r.to_line() + "\n")
        n += 1
    return n


def encode(records: Iterable[PafRecord], *, sink: Sink = None) -> str:
    """Write PAF lines to a path or file-like; return the text when sink is None."""
    return write_to_sink(write_records, records, sink)
