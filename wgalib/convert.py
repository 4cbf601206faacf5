# wgalib/convert.py
from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import InvalidAlignment, SequenceLookupUnavailable
from .formats.chain import ChainBlock, ChainRecord
from .formats.cigar import CigarOp, CigarRun, collapse_mismatches, derive_cigar, rebuild_aligned, runs_to_string
from .formats.maf import MafBlock, MafRow
from .formats.paf import DEFAULT_MAPQ, PafRecord
from .models.record import AlignRecord, RecStat
from .models.strand import Strand, reverse_coords
from .sequences.base import SequenceSource, reverse_complement

__all__ = [
    "record_to_paf",
    "record_to_chain",
    "record_to_maf",
    "maf_to_paf",
    "maf_to_chain",
    "paf_to_chain",
    "paf_to_maf",
    "chain_to_paf",
    "chain_to_maf",
]

_log = logging.getLogger(__name__)


def _runs_and_stat(rec: AlignRecord) -> Tuple[List[CigarRun], RecStat]:
    if isinstance(rec, MafBlock):
        cigar = rec.derive()
        return cigar.runs, cigar.stat
    return rec.cigar_runs(), rec.stat()


def _query_strand_coords(rec: AlignRecord) -> Tuple[int, int]:
    """Query interval in the strand-relative convention used by MAF and Chain."""
    span = rec.query_end - rec.query_start
    return reverse_coords(rec.query_start, span, rec.query_length, rec.query_strand)


# -------------------------------------------------------------------
# To PAF
# -------------------------------------------------------------------

def record_to_paf(
    rec: AlignRecord,
    runs: Optional[List[CigarRun]] = None,
    stat: Optional[RecStat] = None,
    *,
    with_edit_distance: bool = True,
) -> PafRecord:
    if runs is None or stat is None:
        runs, stat = _runs_and_stat(rec)
    tags = []
    if with_edit_distance:
        tags.append(f"NM:i:{stat.edit_distance}")
    tags.append(f"cg:Z:{runs_to_string(runs)}")
    return PafRecord(
        query_name=rec.query_name,
        query_length=rec.query_length,
        query_start=rec.query_start,
        query_end=rec.query_end,
        strand=rec.query_strand,
        target_name=rec.target_name,
        target_length=rec.target_length,
        target_start=rec.target_start,
        target_end=rec.target_end,
        matches=stat.match_count,
        block_length=stat.block_length,
        mapq=DEFAULT_MAPQ,
        tags=tags,
    )


def maf_to_paf(blocks: Iterable[MafBlock]) -> Iterator[PafRecord]:
    for block in blocks:
        yield record_to_paf(block)


def chain_to_paf(
    chains: Iterable[ChainRecord],
    target_seqs: Optional[SequenceSource] = None,
    query_seqs: Optional[SequenceSource] = None,
) -> Iterator[PafRecord]:
    """
    Chains hold no bases. Without sequence sources every aligned column is
    reported as a match and no NM tag is written; with both sources the
    rows are rebuilt and matches/mismatches counted from the bases.
    """
    with_bases = target_seqs is not None and query_seqs is not None
    for ch in chains:
        if with_bases:
            block = record_to_maf(ch, target_seqs, query_seqs)
            cigar = derive_cigar(block.target_row.seq, block.query_row.seq)
            yield record_to_paf(ch, cigar.runs, cigar.stat)
        else:
            yield record_to_paf(ch, with_edit_distance=False)


# -------------------------------------------------------------------
# To Chain
# -------------------------------------------------------------------

def record_to_chain(rec: AlignRecord, chain_id: int) -> ChainRecord:
    """
    Build a chain from any record's CIGAR runs. Indels before the first or
    after the last aligned run cannot be expressed in a chain and are
    trimmed from the coordinates.
    """
    runs, stat = _runs_and_stat(rec)
    runs = collapse_mismatches(runs)
    first = next((i for i, r in enumerate(runs) if r.op is CigarOp.MATCH), None)
    if first is None:
        raise InvalidAlignment(f"{rec.query_name} vs {rec.target_name}: no aligned columns to chain")
    last = max(i for i, r in enumerate(runs) if r.op is CigarOp.MATCH)

    def _span(part: List[CigarRun], op: CigarOp) -> int:
        return sum(r.length for r in part if r.op is op)

    lead_t, lead_q = _span(runs[:first], CigarOp.DEL), _span(runs[:first], CigarOp.INS)
    trail_t, trail_q = _span(runs[last + 1:], CigarOp.DEL), _span(runs[last + 1:], CigarOp.INS)

    blocks: List[ChainBlock] = []
    for r in runs[first:last + 1]:
        if r.op is CigarOp.MATCH:
            blocks.append(ChainBlock(r.length))
        elif r.op is CigarOp.DEL:
            b = blocks[-1]
            blocks[-1] = b._replace(dt=b.dt + r.length)
        else:
            b = blocks[-1]
            blocks[-1] = b._replace(dq=b.dq + r.length)

    q_start, q_end = _query_strand_coords(rec)
    score = getattr(rec, "score", None)
    return ChainRecord(
        score=float(stat.match_count if score is None else score),
        target_name=rec.target_name,
        target_size=rec.target_length,
        target_start=rec.target_start + lead_t,
        target_end=rec.target_end - trail_t,
        query_name=rec.query_name,
        query_size=rec.query_length,
        query_strand=rec.query_strand,
        q_start=q_start + lead_q,
        q_end=q_end - trail_q,
        chain_id=chain_id,
        blocks=blocks,
    )


def _to_chain(records: Iterable[AlignRecord]) -> Iterator[ChainRecord]:
    for chain_id, rec in enumerate(records, start=1):
        yield record_to_chain(rec, chain_id)


def maf_to_chain(blocks: Iterable[MafBlock]) -> Iterator[ChainRecord]:
    return _to_chain(blocks)


def paf_to_chain(records: Iterable[PafRecord]) -> Iterator[ChainRecord]:
    return _to_chain(records)


# -------------------------------------------------------------------
# To MAF
# -------------------------------------------------------------------

def _fetch(src: SequenceSource, role: str, name: str, start: int, end: int, expected_len: int) -> str:
    try:
        if src.length(name) != expected_len:
            _log.warning("%s %s: record says length %d, sequence source has %d",
                         role, name, expected_len, src.length(name))
        return src.sequence(name, start, end)
    except KeyError:
        raise SequenceLookupUnavailable(f"{role} sequence {name!r} not found") from None
    except ValueError as e:
        raise InvalidAlignment(f"{role} {name}: {e}") from None


def record_to_maf(rec: AlignRecord, target_seqs: SequenceSource, query_seqs: SequenceSource) -> MafBlock:
    """Rebuild a two-row block from coordinates, CIGAR runs and the original bases."""
    t_bases = _fetch(target_seqs, "target", rec.target_name, rec.target_start, rec.target_end, rec.target_length)
    q_bases = _fetch(query_seqs, "query", rec.query_name, rec.query_start, rec.query_end, rec.query_length)
    if rec.query_strand is Strand.NEGATIVE:
        q_bases = reverse_complement(q_bases)

    t_row, q_row = rebuild_aligned(t_bases, q_bases, rec.cigar_runs())
    q_start, _ = _query_strand_coords(rec)
    return MafBlock(
        rows=[
            MafRow(rec.target_name, rec.target_start, len(t_bases), Strand.POSITIVE, rec.target_length, t_row),
            MafRow(rec.query_name, q_start, len(q_bases), rec.query_strand, rec.query_length, q_row),
        ],
        score=getattr(rec, "score", None),
    )


def _require_sources(target_seqs: Optional[SequenceSource], query_seqs: Optional[SequenceSource], what: str) -> None:
    missing = [role for role, src in (("target", target_seqs), ("query", query_seqs)) if src is None]
    if missing:
        raise SequenceLookupUnavailable(
            f"{what} needs the original bases; no {' or '.join(missing)} sequence source given"
        )


def _to_maf(records: Iterable[AlignRecord], target_seqs: SequenceSource, query_seqs: SequenceSource) -> Iterator[MafBlock]:
    for rec in records:
        yield record_to_maf(rec, target_seqs, query_seqs)


def paf_to_maf(
    records: Iterable[PafRecord],
    target_seqs: Optional[SequenceSource],
    query_seqs: Optional[SequenceSource],
) -> Iterator[MafBlock]:
    # Checked eagerly so the failure comes before any output is produced.
    _require_sources(target_seqs, query_seqs, "PAF to MAF")
    return _to_maf(records, target_seqs, query_seqs)


def chain_to_maf(
    chains: Iterable[ChainRecord],
    target_seqs: Optional[SequenceSource],
    query_seqs: Optional[SequenceSource],
) -> Iterator[MafBlock]:
    _require_sources(target_seqs, query_seqs, "chain to MAF")
    return _to_maf(chains, target_seqs, query_seqs)
