# wgalib/formats/cigar.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from ..errors import InvalidAlignment, MalformedCigarString
from ..models.record import RecStat
from ..utils.rle import rle_runs

__all__ = [
    "CigarOp",
    "CigarRun",
    "Cigar",
    "derive_cigar",
    "parse_cigar",
    "runs_to_string",
    "collapse_mismatches",
    "stat_from_runs",
    "rebuild_aligned",
]

# Operations are named relative to the target (reference) row:
#   I : bases in the query only (target row has '-')
#   D : bases in the target only (query row has '-')


class CigarOp(str, Enum):
    MATCH = "M"
    MISMATCH = "X"
    INS = "I"
    DEL = "D"

    @property
    def consumes_target(self) -> bool:
        return self is not CigarOp.INS

    @property
    def consumes_query(self) -> bool:
        return self is not CigarOp.DEL


_OP_LETTERS = {
    "M": CigarOp.MATCH,
    "=": CigarOp.MATCH,
    "X": CigarOp.MISMATCH,
    "I": CigarOp.INS,
    "D": CigarOp.DEL,
}


@dataclass(frozen=True, slots=True)
class CigarRun:
    op: CigarOp
    length: int


@dataclass(slots=True)
class Cigar:
    """Runs derived from a pair of gapped rows, with their aggregate counts."""
    runs: List[CigarRun] = field(default_factory=list)
    stat: RecStat = field(default_factory=RecStat)

    def to_string(self, eqx: bool = False) -> str:
        return runs_to_string(self.runs, eqx=eqx)

    def __str__(self) -> str:
        return self.to_string()


# ---------- derive from gapped rows ----------

def derive_cigar(target_seq: str, query_seq: str, *, strict: bool = False) -> Cigar:
    """
    Classify alignment columns and merge equal neighbours into runs.

    Columns gapped on both rows consume neither sequence. They are skipped
    unless strict=True, in which case they raise InvalidAlignment.
    """
    if len(target_seq) != len(query_seq):
        raise InvalidAlignment(
            f"gapped rows differ in length ({len(target_seq)} != {len(query_seq)})"
        )

    st = RecStat()
    classes: List[str] = []
    for col, (t, q) in enumerate(zip(target_seq, query_seq)):
        if t == "-":
            if q == "-":
                if strict:
                    raise InvalidAlignment(f"column {col} is a gap on both rows")
                continue
            classes.append("I")
            st.ins_count += 1
        elif q == "-":
            classes.append("D")
            st.del_count += 1
        elif t.upper() == q.upper():
            classes.append("M")
            st.match_count += 1
        else:
            classes.append("X")
            st.mismatch_count += 1

    runs = [CigarRun(_OP_LETTERS[sym], n) for sym, n in rle_runs("".join(classes))]
    return Cigar(runs=runs, stat=st)


# ---------- decode CIGAR text ----------

def parse_cigar(text: str) -> List[CigarRun]:
    """Parse "10M2I3D" style text. '=' decodes as a match run."""
    runs: List[CigarRun] = []
    num: List[str] = []
    for i, ch in enumerate(text):
        if ch.isdigit():
            num.append(ch)
            continue
        if not num:
            raise MalformedCigarString(f"expected a run length at offset {i} of {text!r}")
        op = _OP_LETTERS.get(ch)
        if op is None:
            raise MalformedCigarString(f"unknown CIGAR operation {ch!r} in {text!r}")
        length = int("".join(num))
        if length == 0:
            raise MalformedCigarString(f"zero-length run at offset {i} of {text!r}")
        runs.append(CigarRun(op, length))
        num = []
    if num:
        raise MalformedCigarString(f"run length without operation at end of {text!r}")
    return runs


def collapse_mismatches(runs: Iterable[CigarRun]) -> List[CigarRun]:
    """Fold X into M and merge the neighbours that become equal."""
    out: List[CigarRun] = []
    for r in runs:
        op = CigarOp.MATCH if r.op is CigarOp.MISMATCH else r.op
        if out and out[-1].op is op:
            out[-1] = CigarRun(op, out[-1].length + r.length)
        else:
            out.append(CigarRun(op, r.length))
    return out


def runs_to_string(runs: Iterable[CigarRun], eqx: bool = False) -> str:
    if eqx:
        return "".join(f"{r.length}{'=' if r.op is CigarOp.MATCH else r.op.value}" for r in runs)
    return "".join(f"{r.length}{r.op.value}" for r in collapse_mismatches(runs))


def stat_from_runs(runs: Sequence[CigarRun], edit_distance: Optional[int] = None) -> RecStat:
    """
    Fold runs into counts.

    A bare 'M' cannot tell matches from mismatches. When the runs carry no
    explicit X and an edit distance (NM) is known, mismatches are inferred
    as NM - insertions - deletions.
    """
    st = RecStat()
    for r in runs:
        if r.op is CigarOp.MATCH:
            st.match_count += r.length
        elif r.op is CigarOp.MISMATCH:
            st.mismatch_count += r.length
        elif r.op is CigarOp.INS:
            st.ins_count += r.length
        else:
            st.del_count += r.length

    explicit = any(r.op is CigarOp.MISMATCH for r in runs)
    if edit_distance is not None and not explicit:
        inferred = edit_distance - st.ins_count - st.del_count
        if inferred < 0 or inferred > st.match_count:
            raise MalformedCigarString(
                f"edit distance {edit_distance} is inconsistent with "
                f"{st.ins_count} inserted / {st.del_count} deleted / {st.match_count} aligned bases"
            )
        st.mismatch_count = inferred
        st.match_count -= inferred
    return st


# ---------- rebuild gapped rows ----------

def rebuild_aligned(target_bases: str, query_bases: str, runs: Iterable[CigarRun]) -> Tuple[str, str]:
    """
    Re-create gapped (target, query) rows from ungapped bases and runs.

    Every base must be consumed exactly; otherwise InvalidAlignment.
    """
    ti = qi = 0
    out_t: List[str] = []
    out_q: List[str] = []
    for r in runs:
        n = r.length
        if r.op.consumes_target:
            if len(target_bases) - ti < n:
                raise InvalidAlignment("not enough target bases for CIGAR run "
                                       f"{n}{r.op.value} at target offset {ti}")
            out_t.append(target_bases[ti:ti + n])
            ti += n
        else:
            out_t.append("-" * n)
        if r.op.consumes_query:
            if len(query_bases) - qi < n:
                raise InvalidAlignment("not enough query bases for CIGAR run "
                                       f"{n}{r.op.value} at query offset {qi}")
            out_q.append(query_bases[qi:qi + n])
            qi += n
        else:
            out_q.append("-" * n)

    if ti != len(target_bases) or qi != len(query_bases):
        raise InvalidAlignment(
            f"CIGAR leaves {len(target_bases) - ti} target / {len(query_bases) - qi} query bases unused"
        )
    return "".join(out_t), "".join(out_q)
