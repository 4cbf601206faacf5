# wgalib/formats/maf.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, List, Literal, Optional, TextIO, Tuple, Union

from ..errors import (
    InvalidAlignment,
    InvalidNumber,
    MissingField,
    ParseError,
    UnexpectedFieldCount,
    UnknownStrandSymbol,
)
from ..models.record import RecStat
from ..models.strand import Strand, forward_coords
from ..utils.textio import Sink, Source, as_lines, format_score, write_to_sink
from .cigar import Cigar, CigarRun, derive_cigar

__all__ = [
    "MafRow",
    "MafBlock",
    "MafReader",
    "decode",
    "encode",
    "slice_block",
    "DEFAULT_HEADER",
]

_log = logging.getLogger(__name__)

DEFAULT_HEADER = "##maf version=1"
DEFAULT_SCORE = 255.0

# Lines that annotate the preceding 's' row and never end a block.
_ANNOTATION_LINES = {"i", "e", "q"}

_S_FIELDS = ("s", "name", "start", "align_size", "strand", "size", "seq")

Errors = Literal["strict", "skip", "yield"]

# -------------------------------------------------------------------
# Public data model
# -------------------------------------------------------------------

@dataclass(slots=True)
class MafRow:
    """
    One 's' line of a MAF block.

    start is 0-based. On the '-' strand it counts from the end of the
    source, i.e. along the reverse complement, and seq is written in that
    orientation as well.
    """
    name: str
    start: int
    align_size: int
    strand: Strand
    size: int
    seq: str

    @property
    def end(self) -> int:
        return self.start + self.align_size

    @property
    def columns(self) -> int:
        return len(self.seq)

    def ungapped_len(self) -> int:
        return len(self.seq) - self.seq.count("-")

    def forward_coords(self) -> Tuple[int, int]:
        return forward_coords(self.start, self.align_size, self.size, self.strand)

    def to_line(self) -> str:
        return f"s {self.name} {self.start} {self.align_size} {self.strand.value} {self.size} {self.seq}"


@dataclass(slots=True)
class MafBlock:
    """
    An alignment block. Row 0 is the target, row 1 the query; further rows
    are kept but take no part in conversions.
    """
    rows: List[MafRow] = field(default_factory=list)
    score: Optional[float] = None

    @property
    def columns(self) -> int:
        return self.rows[0].columns if self.rows else 0

    @property
    def target_row(self) -> MafRow:
        return self._row(0)

    @property
    def query_row(self) -> MafRow:
        return self._row(1)

    def _row(self, i: int) -> MafRow:
        if len(self.rows) <= i:
            raise InvalidAlignment(f"block has {len(self.rows)} row(s); a target and a query row are required")
        return self.rows[i]

    # ---------- AlignRecord ----------

    @property
    def query_name(self) -> str:
        return self.query_row.name

    @property
    def query_length(self) -> int:
        return self.query_row.size

    @property
    def query_start(self) -> int:
        return self.query_row.forward_coords()[0]

    @property
    def query_end(self) -> int:
        return self.query_row.forward_coords()[1]

    @property
    def query_strand(self) -> Strand:
        return self.query_row.strand

    @property
    def target_name(self) -> str:
        return self.target_row.name

    @property
    def target_length(self) -> int:
        return self.target_row.size

    @property
    def target_start(self) -> int:
        return self.target_row.start

    @property
    def target_end(self) -> int:
        return self.target_row.end

    @property
    def target_strand(self) -> Strand:
        return Strand.POSITIVE

    @property
    def target_align_size(self) -> int:
        return self.target_row.align_size

    def derive(self) -> Cigar:
        return derive_cigar(self.target_row.seq, self.query_row.seq)

    def cigar_runs(self) -> List[CigarRun]:
        return self.derive().runs

    def cigar_string(self) -> str:
        return self.derive().to_string()

    def stat(self) -> RecStat:
        return self.derive().stat


# -------------------------------------------------------------------
# Row parsing
# -------------------------------------------------------------------

def _int_field(value: str, name: str, line_no: Optional[int]) -> int:
    try:
        n = int(value)
    except ValueError:
        raise InvalidNumber(f"{name} {value!r} is not an integer", line_no=line_no) from None
    if n < 0:
        raise InvalidNumber(f"{name} {value!r} is negative", line_no=line_no)
    return n


def parse_row(line: str, line_no: Optional[int] = None) -> MafRow:
    parts = line.split()
    if len(parts) < len(_S_FIELDS):
        missing = _S_FIELDS[len(parts)]
        raise MissingField(f"s-line {missing} is missing", line_no=line_no)
    if len(parts) > len(_S_FIELDS):
        raise UnexpectedFieldCount(
            f"s-line has {len(parts)} fields, expected {len(_S_FIELDS)}", line_no=line_no
        )
    _, name, start, align_size, strand, size, seq = parts
    try:
        strand_v = Strand.from_symbol(strand)
    except UnknownStrandSymbol as e:
        raise UnknownStrandSymbol(str(e), line_no=line_no) from None

    row = MafRow(
        name=name,
        start=_int_field(start, "start", line_no),
        align_size=_int_field(align_size, "align_size", line_no),
        strand=strand_v,
        size=_int_field(size, "size", line_no),
        seq=seq,
    )
    if row.ungapped_len() != row.align_size:
        raise InvalidAlignment(
            f"{name}: align_size {row.align_size} but sequence holds {row.ungapped_len()} bases",
            line_no=line_no,
        )
    return row


def _parse_score(line: str, line_no: int) -> Optional[float]:
    for token in line.split()[1:]:
        key, _, value = token.partition("=")
        if key == "score":
            try:
                return float(value)
            except ValueError:
                raise InvalidNumber(f"score {value!r} is not a number", line_no=line_no) from None
    return None


# -------------------------------------------------------------------
# Reader
# -------------------------------------------------------------------

class MafReader:
    """
    Forward-only MAF block reader.

    Accepts any iterable of lines, text or bytes (an open file in either
    mode, sys.stdin, a list). tell() reports the byte offset of the next
    unread line so callers can seek back to a block later; `offset` sets
    the value for the first line when reading starts mid-file.

    After each read_block() call, block_offset holds the byte offset of
    that block's first line.

    Iterating yields MafBlock or the ParseError describing a bad block.
    A bad block is consumed whole, so reading resumes cleanly after it.
    """

    def __init__(self, stream: Iterable[Union[str, bytes]], *, offset: int = 0, read_header: bool = True) -> None:
        self._it = iter(stream)
        self._pos = offset
        self._line_no = 0
        self._pending: Optional[Tuple[str, int, int]] = None  # (text, raw byte length, line number)
        self._last: Tuple[str, int, int] = ("", 0, 0)
        self.header: Optional[str] = None
        # byte offset of the first line ('a' or 's') of the last block read
        self.block_offset: Optional[int] = None
        if read_header:
            self._read_header()

    def _read_header(self) -> None:
        got = self._readline()
        if got is None:
            return
        text, _ = got
        if text.startswith("#"):
            self.header = text.rstrip("\r\n")
        else:
            _log.warning("MAF header does not start with '#'")
            self._unread()

    # ---------- line access with one line of push-back ----------

    def _readline(self) -> Optional[Tuple[str, int]]:
        if self._pending is not None:
            text, raw_len, line_no = self._pending
            self._pending = None
            self._pos += raw_len
            self._last = (text, raw_len, line_no)
            return text, line_no
        raw = next(self._it, None)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw_len = len(raw)
            text = raw.decode("utf-8")
        else:
            raw_len = len(raw.encode("utf-8"))
            text = raw
        self._line_no += 1
        self._pos += raw_len
        self._last = (text, raw_len, self._line_no)
        return text, self._line_no

    def _unread(self) -> None:
        self._pending = self._last
        self._pos -= self._last[1]

    def tell(self) -> int:
        return self._pos

    # ---------- blocks ----------

    def read_block(self) -> Union[MafBlock, ParseError, None]:
        """Return the next block, the error for a bad block, or None at end of input."""
        score: Optional[float] = None
        error: Optional[ParseError] = None
        started = False
        while True:
            got = self._readline()
            if got is None:
                return error
            text, line_no = got
            s = text.strip()
            if not s:
                # an 'a' line with a bad score and no rows ends here
                if error is not None:
                    return error
                continue
            if s.startswith("#"):
                continue
            kind = s.split(None, 1)[0]
            if kind == "a" and started:
                # previous 'a' line had no rows; it never owns the next block
                if error is not None:
                    self._unread()
                    return error
                score = None
            if kind == "a" or (kind == "s" and not started):
                started = True
                self.block_offset = self._pos - self._last[1]
            if kind == "s":
                break
            if kind == "a":
                try:
                    score = _parse_score(s, line_no)
                except ParseError as e:
                    error = e
            # 'i'/'e'/'q' lines and unknown lines outside a block are skipped

        first_line = line_no
        rows: List[MafRow] = []
        while True:
            if error is None:
                try:
                    rows.append(parse_row(s, line_no))
                except ParseError as e:
                    error = e
            nxt = self._next_row_line()
            if nxt is None:
                break
            s, line_no = nxt

        if error is not None:
            return error
        widths = {r.columns for r in rows}
        if len(widths) > 1:
            return InvalidAlignment(
                f"block rows differ in column count: {sorted(widths)}", line_no=first_line
            )
        return MafBlock(rows=rows, score=score)

    def _next_row_line(self) -> Optional[Tuple[str, int]]:
        """Next 's' line of the current block, or None once the block ends."""
        while True:
            got = self._readline()
            if got is None:
                return None
            text, line_no = got
            s = text.strip()
            if not s:
                return None
            kind = s.split(None, 1)[0]
            if kind == "s":
                return s, line_no
            if kind in _ANNOTATION_LINES:
                continue
            self._unread()
            return None

    def __iter__(self) -> Iterator[Union[MafBlock, ParseError]]:
        while True:
            item = self.read_block()
            if item is None:
                return
            yield item


# -------------------------------------------------------------------
# Writing helpers
# -------------------------------------------------------------------

def _block_text(block: MafBlock) -> str:
    lines = [f"a score={format_score(DEFAULT_SCORE if block.score is None else block.score)}"]
    lines.extend(r.to_line() for r in block.rows)
    return "\n".join(lines) + "\n\n"


# -------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------

def decode(source: Source, *, errors: Errors = "strict") -> Iterator[Union[MafBlock, ParseError]]:
    """
    Stream MafBlock objects.

    errors='strict' raises the first ParseError, 'skip' logs and drops bad
    blocks, 'yield' hands ParseError objects back in place of the block.
    """
    if errors not in ("strict", "skip", "yield"):
        raise ValueError("errors must be 'strict', 'skip' or 'yield'")
    for item in MafReader(as_lines(source)):
        if isinstance(item, ParseError):
            if errors == "strict":
                raise item
            if errors == "skip":
                _log.warning("skipping MAF block: %s", item)
                continue
        yield item


def write_blocks(blocks: Iterable[MafBlock], out: TextIO, header: Optional[str] = DEFAULT_HEADER) -> int:
    n = 0
    if header:
        out.write(header.rstrip("\n") + "\n\n")
    for b in blocks:
        out.write(_block_text(b))
        n += 1
    return n


def encode(
    blocks: Iterable[MafBlock],
    *,
    sink: Sink = None,
    header: Optional[str] = DEFAULT_HEADER,
) -> str:
    """Write MAF text to a path or file-like; return the text when sink is None."""
    return write_to_sink(lambda items, out: write_blocks(items, out, header), blocks, sink)


# -------------------------------------------------------------------
# Slicing
# -------------------------------------------------------------------

def _column_after(seq: str, n_bases: int) -> int:
    """First column index preceded by exactly n_bases non-gap characters."""
    if n_bases == 0:
        return 0
    seen = 0
    for col, ch in enumerate(seq):
        if ch != "-":
            seen += 1
            if seen == n_bases:
                return col + 1
    raise InvalidAlignment(f"row holds {seen} bases, cannot cut after base {n_bases}")


def slice_block(block: MafBlock, cut_start: int, cut_end: int, ord: int = 0) -> MafBlock:
    """
    Return a new block restricted to [cut_start, cut_end) of row `ord`.

    Coordinates are ungapped positions of that row (its own strand
    convention). Gap columns between two bases stay with the slice holding
    the following base; the slice reaching the row end keeps trailing gaps.
    """
    ref = block.rows[ord]
    if not (ref.start <= cut_start <= cut_end <= ref.end):
        raise InvalidAlignment(
            f"cut [{cut_start}, {cut_end}) is outside {ref.name}:[{ref.start}, {ref.end})"
        )

    start_col = _column_after(ref.seq, cut_start - ref.start)
    if cut_end == cut_start:
        end_col = start_col
    elif cut_end == ref.end:
        end_col = len(ref.seq)
    else:
        end_col = _column_after(ref.seq, cut_end - ref.start)

    rows: List[MafRow] = []
    for i, row in enumerate(block.rows):
        before = row.seq[:start_col]
        seq = row.seq[start_col:end_col]
        align_size = len(seq) - seq.count("-")
        if i == ord:
            if align_size != cut_end - cut_start:
                raise InvalidAlignment(
                    f"{row.name}: slice holds {align_size} bases, expected {cut_end - cut_start}"
                )
            rows.append(replace(row, start=cut_start, align_size=align_size, seq=seq))
            continue
        consumed = len(before) - before.count("-")
        if align_size < 0 or consumed > row.align_size:
            raise InvalidAlignment(f"{row.name}: slice arithmetic went negative")
        rows.append(replace(row, start=row.start + consumed, align_size=align_size, seq=seq))
    return MafBlock(rows=rows, score=block.score)
