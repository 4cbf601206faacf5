# wgalib/utils/rle.py
from __future__ import annotations

import re
from typing import Iterator, Tuple

_run_re = re.compile(r"(.)\1*")


def rle_runs(input_string: str) -> Iterator[Tuple[str, int]]:
    """Yield (symbol, run length) for each maximal run of equal characters: "MMMIID" -> M3, I2, D1."""
    for m in _run_re.finditer(input_string):
        yield m.group(1), len(m.group(0))
