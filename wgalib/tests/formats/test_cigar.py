import pytest
from wgalib.errors import InvalidAlignment, MalformedCigarString
from wgalib.formats.cigar import (
    CigarOp,
    CigarRun,
    collapse_mismatches,
    derive_cigar,
    parse_cigar,
    rebuild_aligned,
    runs_to_string,
    stat_from_runs,
)

def test_derive_basic_runs():
    c = derive_cigar("ACGT-ACGTAC", "ACGTTACG-AC")
    assert str(c) == "4M1I3M1D2M"
    assert (c.stat.match_count, c.stat.mismatch_count, c.stat.ins_count, c.stat.del_count) == (9, 0, 1, 1)

def test_derive_mismatches_fold_into_m():
    c = derive_cigar("AAAACCCC", "AAATCCCC")
    assert c.to_string() == "8M"
    assert c.to_string(eqx=True) == "3=1X4="
    assert c.stat.mismatch_count == 1
    assert c.stat.match_count == 7

def test_derive_is_case_insensitive():
    assert derive_cigar("acgt", "ACGT").stat.mismatch_count == 0

def test_identical_rows_with_shared_gaps():
    row = "---AGC-CAT-CATT"
    c = derive_cigar(row, row)
    assert c.to_string() == "10M"
    assert c.stat.match_count == 10
    assert c.stat.mismatch_count == 0
    assert c.stat.target_span == c.stat.query_span == 10

def test_shared_gaps_rejected_when_strict():
    with pytest.raises(InvalidAlignment):
        derive_cigar("A-C", "A-C", strict=True)

def test_derive_unequal_lengths():
    with pytest.raises(InvalidAlignment):
        derive_cigar("ACGT", "ACG")

def test_spans_match_ungapped_lengths():
    t, q = "AC--GTTA-CG", "ACTTG-TAACG"
    st = derive_cigar(t, q).stat
    assert st.target_span == len(t.replace("-", ""))
    assert st.query_span == len(q.replace("-", ""))

def test_parse_cigar():
    assert parse_cigar("10M2I3D") == [
        CigarRun(CigarOp.MATCH, 10), CigarRun(CigarOp.INS, 2), CigarRun(CigarOp.DEL, 3)
    ]
    assert parse_cigar("5=1X") == [CigarRun(CigarOp.MATCH, 5), CigarRun(CigarOp.MISMATCH, 1)]
    assert parse_cigar("") == []

@pytest.mark.parametrize("bad", ["M", "10", "3M4", "5Z", "0M", "3M-2D"])
def test_parse_cigar_malformed(bad):
    with pytest.raises(MalformedCigarString):
        parse_cigar(bad)

def test_eqx_text_parses_back_to_same_runs():
    runs = derive_cigar("AAAACCCC-G", "AAATCCCCTG").runs
    assert parse_cigar(runs_to_string(runs, eqx=True)) == runs

def test_collapse_mismatches_merges_neighbours():
    runs = parse_cigar("3=1X4=2I")
    assert collapse_mismatches(runs) == [CigarRun(CigarOp.MATCH, 8), CigarRun(CigarOp.INS, 2)]

def test_stat_from_runs_infers_mismatches_from_nm():
    st = stat_from_runs(parse_cigar("10M2I1D"), edit_distance=5)
    assert st.mismatch_count == 2
    assert st.match_count == 8
    assert st.edit_distance == 5

def test_stat_from_runs_without_nm_counts_all_m_as_matches():
    st = stat_from_runs(parse_cigar("10M2I"))
    assert st.match_count == 10 and st.mismatch_count == 0

def test_stat_from_runs_explicit_x_wins_over_nm():
    st = stat_from_runs(parse_cigar("4=1X"), edit_distance=3)
    assert st.mismatch_count == 1

@pytest.mark.parametrize("nm", [1, 20])
def test_stat_from_runs_inconsistent_nm(nm):
    # 2 indel bases, 10 aligned: NM must lie in [2, 12]
    with pytest.raises(MalformedCigarString):
        stat_from_runs(parse_cigar("10M1I1D"), edit_distance=nm)

def test_rebuild_aligned():
    t, q = rebuild_aligned("ACGTACGTAC", "ACGTTACGAC", parse_cigar("4M1I3M1D2M"))
    assert t == "ACGT-ACGTAC"
    assert q == "ACGTTACG-AC"

def test_rebuild_aligned_base_count_mismatch():
    with pytest.raises(InvalidAlignment):
        rebuild_aligned("ACGT", "ACGT", parse_cigar("3M"))
    with pytest.raises(InvalidAlignment):
        rebuild_aligned("ACG", "ACGT", parse_cigar("4M"))
