from pathlib import Path
import pytest

# Small three-species MAF used across the format, index and CLI tests.
#
#   block 1: hg/mm/rn, target hg:[0, 10)
#   block 2: hg/mm/rn, query on the '-' strand, an 'i' line inside
#
SAMPLE_MAF = """\
##maf version=1 scoring=test

a score=100.0
s hg.chr1 0 10 + 100 ACGT-ACGTAC
s mm.chr2 5 10 + 50  ACGTTACG-AC
s rn.chr3 0 11 + 20  ACGTTACGTAC

a score=42
s hg.chr1 20 8 + 100 AAAACCCC
i hg.chr1 N 0 C 0
s mm.chr2 10 8 - 50  AAATCCCC
s rn.chr3 11 8 + 20  AAAACCCC
"""


@pytest.fixture
def sample_maf_text() -> str:
    return SAMPLE_MAF


@pytest.fixture
def sample_maf(tmp_path) -> Path:
    p = tmp_path / "sample.maf"
    p.write_text(SAMPLE_MAF)
    return p
