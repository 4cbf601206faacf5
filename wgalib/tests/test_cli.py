import json
import pytest
from wgalib.cli import main, parse_region
from wgalib.errors import InvalidRegion

HG = "ACGTACGTAC" + "N" * 10 + "AAAACCCC" + "N" * 72
MM = "N" * 5 + "ACGTTACGAC" + "N" * 17 + "GGGGATTT" + "N" * 10

def _write(path, text):
    path.write_text(text)
    return str(path)

def test_maf2paf_to_file(tmp_path, sample_maf):
    out = tmp_path / "out.paf"
    assert main(["-o", str(out), "maf2paf", str(sample_maf)]) == 0
    lines = out.read_text().splitlines()
    assert len(lines) == 2
    assert lines[0].split("\t")[:12] == ["mm.chr2", "50", "5", "15", "+", "hg.chr1", "100", "0", "10", "9", "11", "255"]

def test_alias_writes_stdout(sample_maf, capsys):
    assert main(["m2c", str(sample_maf)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("chain 100 hg.chr1 100 + 0 10 mm.chr2 50 + 5 15 1\n")

def test_existing_output_needs_rewrite(tmp_path, sample_maf):
    out = tmp_path / "out.chain"
    out.write_text("keep")
    assert main(["-o", str(out), "maf2chain", str(sample_maf)]) == 1
    assert out.read_text() == "keep"
    assert main(["-o", str(out), "-r", "maf2chain", str(sample_maf)]) == 0
    assert out.read_text().startswith("chain ")

def test_paf2maf_requires_fasta(tmp_path):
    paf = _write(tmp_path / "x.paf", "")
    with pytest.raises(SystemExit) as e:
        main(["paf2maf", paf])
    assert e.value.code == 2

def test_maf_paf_maf(tmp_path, sample_maf):
    paf = tmp_path / "x.paf"
    assert main(["-o", str(paf), "maf2paf", str(sample_maf)]) == 0
    t = _write(tmp_path / "t.fa", f">hg.chr1\n{HG}\n")
    q = _write(tmp_path / "q.fa", f">mm.chr2\n{MM}\n")
    out = tmp_path / "back.maf"
    assert main(["-o", str(out), "p2m", "-t", t, "-q", q, str(paf)]) == 0
    text = out.read_text()
    assert "s hg.chr1 0 10 + 100 ACGT-ACGTAC\n" in text
    assert "s mm.chr2 10 8 - 50 AAATCCCC\n" in text

def test_skip_invalid(tmp_path):
    paf = _write(tmp_path / "x.paf",
                 "q\t20\t0\t5\t+\tt\t50\t0\t5\t5\t5\t60\tcg:Z:5M\nnot a paf line\n")
    out = tmp_path / "x.chain"
    assert main(["-o", str(out), "paf2chain", paf]) == 1
    assert not out.exists()
    assert main(["-o", str(out), "paf2chain", "--skip-invalid", paf]) == 0
    assert out.read_text().count("chain ") == 1

def test_sort(tmp_path, capsys):
    paf = _write(tmp_path / "x.paf", "".join(
        f"q\t20\t0\t5\t+\t{t}\t500\t{s}\t{s + 5}\t5\t5\t60\tcg:Z:5M\n"
        for t, s in [("chr10", 0), ("chr2", 100), ("chr2", 7)]
    ))
    assert main(["p2c", "--sort", paf]) == 0
    headers = [ln.split() for ln in capsys.readouterr().out.splitlines() if ln.startswith("chain")]
    assert [(h[2], h[5]) for h in headers] == [("chr2", "7"), ("chr2", "100"), ("chr10", "0")]

def test_index_and_extract(tmp_path, sample_maf, capsys):
    idx = str(sample_maf) + ".index.json"
    assert main(["maf-index", str(sample_maf)]) == 0
    assert set(json.loads(open(idx).read())) == {"hg.chr1", "mm.chr2", "rn.chr3"}

    assert main(["maf-extract", str(sample_maf), "hg.chr1:22-26"]) == 0
    out = capsys.readouterr().out
    assert "s hg.chr1 22 4 + 100 AACC\n" in out

def test_index_explicit_path_and_rewrite(tmp_path, sample_maf):
    idx = tmp_path / "custom.json"
    assert main(["-o", str(idx), "maf-index", str(sample_maf)]) == 0
    assert json.loads(idx.read_text())["hg.chr1"]["ord"] == 0
    assert main(["-o", str(idx), "maf-index", str(sample_maf)]) == 1
    assert main(["-o", str(idx), "-r", "maf-index", str(sample_maf)]) == 0

def test_extract_unknown_name(tmp_path, sample_maf):
    idx = str(tmp_path / "i.json")
    assert main(["-o", idx, "maf-index", str(sample_maf)]) == 0
    assert main(["maf-extract", "-i", idx, str(sample_maf), "chrZ:0-5"]) == 1

def test_missing_input_file(tmp_path):
    assert main(["maf2paf", str(tmp_path / "nope.maf")]) == 1

def test_parse_region():
    assert parse_region("chr1:10-20") == ("chr1", 10, 20)
    assert parse_region("hg.chr1:1,000-2,000") == ("hg.chr1", 1000, 2000)
    for bad in ["chr1", "chr1:5", ":1-2", "chr1:9-3", "chr1:a-b"]:
        with pytest.raises(InvalidRegion):
            parse_region(bad)

def test_failed_conversion_leaves_no_output(tmp_path):
    chains = _write(tmp_path / "x.chain",
                    "chain 10 t1 20 + 0 5 q1 20 + 0 5 1\n5\n\n"
                    "chain 9 t1 20 + 5 10 qMISSING 20 + 0 5 2\n5\n\n")
    t = _write(tmp_path / "t.fa", ">t1\nACGTAACGTAACGTAACGTA\n")
    q = _write(tmp_path / "q.fa", ">q1\nACGTAACGTAACGTAACGTA\n")
    out = tmp_path / "out.maf"
    assert main(["-o", str(out), "chain2maf", "-t", t, "-q", q, chains]) == 1
    assert not out.exists()
    assert not (tmp_path / "out.maf.tmp").exists()

def test_failed_rewrite_keeps_previous_output(tmp_path, sample_maf):
    out = tmp_path / "out.paf"
    out.write_text("previous\n")
    bad = _write(tmp_path / "bad.maf", "##maf\na score=1\ns t 0 4 + 9 ACGT\ns q 0 4 + 9 ACG\n")
    assert main(["-o", str(out), "-r", "maf2paf", bad]) == 1
    assert out.read_text() == "previous\n"

def test_bad_region_exits_1(sample_maf):
    assert main(["maf-index", str(sample_maf)]) == 0
    assert main(["maf-extract", str(sample_maf), "hg.chr1:x-y"]) == 1
