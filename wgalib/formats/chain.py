# wgalib/formats/chain.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Literal, NamedTuple, Optional, TextIO, Union

from ..errors import InvalidAlignment, InvalidNumber, MissingField, ParseError, UnexpectedFieldCount, UnknownStrandSymbol
from ..models.record import RecStat
from ..models.strand import Strand, forward_coords
from ..utils.textio import Sink, Source, as_lines, format_score, write_to_sink
from .cigar import CigarOp, CigarRun, runs_to_string, stat_from_runs

__all__ = ["ChainBlock", "ChainRecord", "decode", "encode"]

_log = logging.getLogger(__name__)

Errors = Literal["strict", "skip", "yield"]

# chain score tName tSize tStrand tStart tEnd qName qSize qStrand qStart qEnd id
_HEADER_FIELDS = 13


class ChainBlock(NamedTuple):
    """Ungapped block followed by dt target-only and dq query-only bases."""
    size: int
    dt: int = 0
    dq: int = 0


@dataclass(slots=True)
class ChainRecord:
    """
    UCSC chain. Starts are 0-based. q_start/q_end are the header values:
    on the '-' strand they count along the reverse complement, as in MAF.
    query_start/query_end report the same interval on the forward strand.
    """
    score: float
    target_name: str
    target_size: int
    target_start: int
    target_end: int
    query_name: str
    query_size: int
    query_strand: Strand
    q_start: int
    q_end: int
    chain_id: int
    blocks: List[ChainBlock] = field(default_factory=list)
    t_strand: Strand = Strand.POSITIVE

    # ---------- AlignRecord ----------

    @property
    def query_length(self) -> int:
        return self.query_size

    @property
    def query_start(self) -> int:
        return forward_coords(self.q_start, self.q_end - self.q_start,
                              self.query_size, self.query_strand)[0]

    @property
    def query_end(self) -> int:
        return forward_coords(self.q_start, self.q_end - self.q_start,
                              self.query_size, self.query_strand)[1]

    @property
    def target_length(self) -> int:
        return self.target_size

    @property
    def target_strand(self) -> Strand:
        return Strand.POSITIVE

    @property
    def target_align_size(self) -> int:
        return self.target_end - self.target_start

    def cigar_runs(self) -> List[CigarRun]:
        runs: List[CigarRun] = []
        for b in self.blocks:
            if b.size:
                runs.append(CigarRun(CigarOp.MATCH, b.size))
            if b.dt:
                runs.append(CigarRun(CigarOp.DEL, b.dt))
            if b.dq:
                runs.append(CigarRun(CigarOp.INS, b.dq))
        return runs

    def cigar_string(self) -> str:
        return runs_to_string(self.cigar_runs())

    def stat(self) -> RecStat:
        # Chains carry no bases; every aligned column counts as a match.
        return stat_from_runs(self.cigar_runs())

    def validate(self, line_no: Optional[int] = None) -> None:
        t_span = sum(b.size + b.dt for b in self.blocks)
        q_span = sum(b.size + b.dq for b in self.blocks)
        if t_span != self.target_end - self.target_start or q_span != self.q_end - self.q_start:
            raise InvalidAlignment(
                f"chain {self.chain_id}: blocks cover {t_span}/{q_span} bases but header spans "
                f"{self.target_end - self.target_start}/{self.q_end - self.q_start}",
                line_no=line_no,
            )

    def header_line(self) -> str:
        return " ".join([
            "chain", format_score(self.score),
            self.target_name, str(self.target_size), self.t_strand.value,
            str(self.target_start), str(self.target_end),
            self.query_name, str(self.query_size), self.query_strand.value,
            str(self.q_start), str(self.q_end),
            str(self.chain_id),
        ])

    def to_text(self) -> str:
        lines = [self.header_line()]
        for b in self.blocks[:-1]:
            lines.append(f"{b.size}\t{b.dt}\t{b.dq}")
        if self.blocks:
            lines.append(str(self.blocks[-1].size))
        return "\n".join(lines) + "\n\n"


# -------------------------------------------------------------------
# Parsing
# -------------------------------------------------------------------

def _int(value: str, name: str, line_no: int) -> int:
    try:
        n = int(value)
    except ValueError:
        raise InvalidNumber(f"{name} {value!r} is not an integer", line_no=line_no) from None
    if n < 0:
        raise InvalidNumber(f"{name} {value!r} is negative", line_no=line_no)
    return n


def _strand(value: str, line_no: int) -> Strand:
    try:
        return Strand.from_symbol(value)
    except UnknownStrandSymbol as e:
        raise UnknownStrandSymbol(str(e), line_no=line_no) from None


def parse_header(line: str, line_no: int = 0) -> ChainRecord:
    parts = line.split()
    if len(parts) != _HEADER_FIELDS:
        raise UnexpectedFieldCount(
            f"chain header has {len(parts)} fields, expected {_HEADER_FIELDS}", line_no=line_no
        )
    try:
        score = float(parts[1])
    except ValueError:
        raise InvalidNumber(f"score {parts[1]!r} is not a number", line_no=line_no) from None
    return ChainRecord(
        score=score,
        target_name=parts[2],
        target_size=_int(parts[3], "tSize", line_no),
        t_strand=_strand(parts[4], line_no),
        target_start=_int(parts[5], "tStart", line_no),
        target_end=_int(parts[6], "tEnd", line_no),
        query_name=parts[7],
        query_size=_int(parts[8], "qSize", line_no),
        query_strand=_strand(parts[9], line_no),
        q_start=_int(parts[10], "qStart", line_no),
        q_end=_int(parts[11], "qEnd", line_no),
        chain_id=_int(parts[12], "id", line_no),
    )


def _iter_items(lines: Iterable[str]) -> Iterator[Union[ChainRecord, ParseError]]:
    current: Optional[ChainRecord] = None
    skipping = False  # inside a chain whose header or data already failed
    for line_no, ln in enumerate(lines, start=1):
        if isinstance(ln, bytes):
            ln = ln.decode("utf-8")
        s = ln.strip()
        if not s or s.startswith("#"):
            continue
        parts = s.split()
        if parts[0] == "chain":
            if current is not None:
                yield MissingField(f"chain {current.chain_id} has no final block line", line_no=line_no)
            current = None
            skipping = False
            try:
                current = parse_header(s, line_no)
            except ParseError as e:
                skipping = True
                yield e
            continue
        if skipping:
            continue
        if current is None:
            skipping = True
            yield MissingField("alignment data line before any chain header", line_no=line_no)
            continue
        try:
            if len(parts) == 3:
                current.blocks.append(ChainBlock(
                    _int(parts[0], "size", line_no), _int(parts[1], "dt", line_no), _int(parts[2], "dq", line_no)
                ))
                continue
            if len(parts) != 1:
                raise UnexpectedFieldCount(
                    f"chain data line has {len(parts)} fields, expected 3 or 1", line_no=line_no
                )
            current.blocks.append(ChainBlock(_int(parts[0], "size", line_no)))
            current.validate(line_no)
        except ParseError as e:
            current = None
            skipping = True
            yield e
            continue
        rec, current = current, None
        yield rec
    if current is not None:
        yield MissingField(f"chain {current.chain_id} has no final block line")


def decode(source: Source, *, errors: Errors = "strict") -> Iterator[Union[ChainRecord, ParseError]]:
    """Stream ChainRecord objects; errors behaves as in wgalib.formats.maf.decode."""
    if errors not in ("strict", "skip", "yield"):
        raise ValueError("errors must be 'strict', 'skip' or 'yield'")
    for item in _iter_items(as_lines(source)):
        if isinstance(item, ParseError):
            if errors == "strict":
                raise item
            if errors == "skip":
                _log.warning("skipping chain: %s", item)
                continue
        yield item


def write_records(records: Iterable[ChainRecord], out: TextIO) -> int:
    n = 0
    for r in records:
        out.write(r.to_text())
        n += 1
    return n


def encode(records: Iterable[ChainRecord], *, sink: Sink = None) -> str:
    """Write chains to a path or file-like; return the text when sink is None."""
    return write_to_sink(write_records, records, sink)
