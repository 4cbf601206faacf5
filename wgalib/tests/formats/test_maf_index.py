import io
import json
import pytest
from wgalib.errors import (
    DuplicateSequenceName,
    EmptyInput,
    InconsistentRowOrder,
    InvalidAlignment,
    MissingField,
    ParseError,
    SequenceNotIndexed,
)
from wgalib.formats.maf import MafReader
from wgalib.formats.maf_index import build_index, extract_region, load_index, write_index
from wgalib.models.strand import Strand

def _index(text):
    return build_index(MafReader(io.BytesIO(text.encode())))

def test_build_index(sample_maf_text):
    idx = _index(sample_maf_text)
    assert set(idx) == {"hg.chr1", "mm.chr2", "rn.chr3"}
    hg = idx["hg.chr1"]
    assert hg.ord == 0 and hg.size == 100
    assert [(iv.start, iv.end) for iv in hg.intervals] == [(0, 10), (20, 28)]
    raw = sample_maf_text.encode()
    assert [iv.offset for iv in hg.intervals] == [raw.index(b"a score=100"), raw.index(b"a score=42")]
    mm = idx["mm.chr2"]
    assert mm.ord == 1
    assert mm.intervals[1].strand is Strand.NEGATIVE
    # every name's intervals share offsets with the block they came from
    assert [iv.offset for iv in mm.intervals] == [iv.offset for iv in hg.intervals]

def test_duplicate_name_in_block():
    text = "##maf\na\ns t 0 2 + 9 AC\ns t 4 2 + 9 AC\n"
    with pytest.raises(DuplicateSequenceName):
        _index(text)

def test_inconsistent_row_order():
    text = ("##maf\na\ns t 0 2 + 9 AC\ns q 0 2 + 9 AC\n\n"
            "a\ns q 2 2 + 9 AC\ns t 2 2 + 9 AC\n")
    with pytest.raises(InconsistentRowOrder):
        _index(text)

def test_empty_input():
    with pytest.raises(EmptyInput):
        _index("##maf version=1\n\n")

def test_parse_error_aborts_build():
    with pytest.raises(InvalidAlignment):
        _index("##maf\na\ns t 0 3 + 9 AC\ns q 0 2 + 9 AC\n")

def test_write_and_load(tmp_path, sample_maf_text):
    idx = _index(sample_maf_text)
    p = tmp_path / "x.index.json"
    write_index(idx, str(p))
    assert not (tmp_path / "x.index.json.tmp").exists()
    data = json.loads(p.read_text())
    assert data["mm.chr2"]["intervals"][1]["strand"] == "-"
    assert load_index(str(p)) == idx

    buf = io.StringIO()
    write_index(idx, buf)
    buf.seek(0)
    assert load_index(buf) == idx

def test_load_index_missing_key():
    with pytest.raises(MissingField):
        load_index(io.StringIO('{"t": {"intervals": [], "size": 5}}'))

def test_extract_region(sample_maf, sample_maf_text):
    idx = _index(sample_maf_text)
    blocks = list(extract_region(str(sample_maf), idx, "hg.chr1", 5, 24))
    assert len(blocks) == 2
    first, second = blocks
    assert (first.rows[0].start, first.rows[0].end) == (5, 10)
    assert (second.rows[0].start, second.rows[0].end) == (20, 24)
    assert second.rows[0].seq == "AAAA"
    assert second.score == 42

def test_extract_region_on_query_row(sample_maf, sample_maf_text):
    idx = _index(sample_maf_text)
    (b,) = list(extract_region(str(sample_maf), idx, "rn.chr3", 15, 17))
    assert b.rows[2].seq == "CC"
    assert b.rows[0].start == 24

def test_extract_region_no_overlap_and_unknown_name(sample_maf, sample_maf_text):
    idx = _index(sample_maf_text)
    assert list(extract_region(str(sample_maf), idx, "hg.chr1", 10, 20)) == []
    with pytest.raises(SequenceNotIndexed):
        list(extract_region(str(sample_maf), idx, "nope", 0, 1))

def test_failed_write_leaves_no_temp_file(tmp_path, sample_maf_text, monkeypatch):
    idx = _index(sample_maf_text)
    p = tmp_path / "x.index.json"

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(json, "dump", boom)
    with pytest.raises(OSError):
        write_index(idx, str(p))
    assert not p.exists()
    assert not (tmp_path / "x.index.json.tmp").exists()

def test_load_index_bad_json():
    with pytest.raises(ParseError):
        load_index(io.StringIO("{not json"))
