# wgalib/sequences/fasta.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .base import _check_range

__all__ = ["FastaSequenceSource"]

_log = logging.getLogger(__name__)


@dataclass
class _FaiEntry:
    name: str
    length: int            # number of bases
    offset: int            # byte offset of 1st base in file
    line_bases: int        # bases per data line
    line_bytes: int        # bytes per line including newline


def build_fai(path: str) -> Dict[str, _FaiEntry]:
    """
    Scan a FASTA file once and build a samtools-compatible .fai table.
    Works for LF or CRLF; every data line but the last must share a width.
    """
    entries: Dict[str, _FaiEntry] = {}
    current: Optional[_FaiEntry] = None
    pos = 0
    with open(path, "rb") as f:
        for line in f:
            if line.startswith(b">"):
                header = line[1:].strip().decode("utf-8", errors="ignore")
                name = header.split()[0] if header else ""
                current = _FaiEntry(name=name, length=0, offset=pos + len(line), line_bases=0, line_bytes=0)
                entries[name] = current
            elif current is not None:
                bases = len(line.rstrip(b"\r\n"))
                if current.line_bases == 0:
                    current.line_bases = bases
                    current.line_bytes = len(line)
                current.length += bases
            pos += len(line)
    return entries


def read_fai(fai_path: str) -> Dict[str, _FaiEntry]:
    entries: Dict[str, _FaiEntry] = {}
    with open(fai_path, "rt") as f:
        for ln in f:
            if not ln.strip():
                continue
            name, length, offset, lb, lB = ln.rstrip("\n").split("\t")[:5]
            entries[name] = _FaiEntry(name, int(length), int(offset), int(lb), int(lB))
    return entries


def write_fai(fai_path: str, entries: Dict[str, _FaiEntry]) -> None:
    with open(fai_path, "wt") as f:
        for e in entries.values():
            f.write(f"{e.name}\t{e.length}\t{e.offset}\t{e.line_bases}\t{e.line_bytes}\n")


def _byte_chunks(entry: _FaiEntry, start: int, end: int) -> Iterator[Tuple[int, int]]:
    """Yield (byte_offset, n_bases) pieces covering bases [start, end)."""
    lb, lB = entry.line_bases, entry.line_bytes
    cur = start
    while cur < end:
        in_line = cur % lb
        take = min(lb - in_line, end - cur)
        yield entry.offset + (cur // lb) * lB + in_line, take
        cur += take


@dataclass
class FastaSequenceSource:
    """
    FASTA source with two modes:
      - mode='load'  : read every sequence into memory
      - mode='index' : use <path>.fai (built and saved when missing) and read
                       slices from disk on demand
    """
    path: str
    mode: str = "index"  # 'load' or 'index'
    _seqs: Dict[str, str] = field(default_factory=dict, init=False, repr=False)
    _fai: Dict[str, _FaiEntry] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.mode not in {"load", "index"}:
            raise ValueError("mode must be 'load' or 'index'")
        if self.mode == "load":
            self._load_all()
            return
        fai_path = self.path + ".fai"
        if os.path.exists(fai_path):
            self._fai = read_fai(fai_path)
        else:
            self._fai = build_fai(self.path)
            try:
                write_fai(fai_path, self._fai)
            except OSError as e:
                _log.warning("could not save %s: %s", fai_path, e)

    def _load_all(self) -> None:
        name: Optional[str] = None
        buf: List[str] = []
        with open(self.path, "rt", encoding="utf-8", errors="ignore") as f:
            for ln in f:
                if ln.startswith(">"):
                    if name is not None:
                        self._seqs[name] = "".join(buf)
                    name = ln[1:].strip().split()[0]
                    buf = []
                else:
                    buf.append(ln.strip())
        if name is not None:
            self._seqs[name] = "".join(buf)

    def has(self, name: str) -> bool:
        return (name in self._seqs) or (name in self._fai)

    def ids(self) -> Iterable[str]:
        return self._seqs.keys() if self.mode == "load" else self._fai.keys()

    def length(self, name: str) -> int:
        if self.mode == "load":
            return len(self._seqs[name])
        return self._fai[name].length

    def sequence(self, name: str, start: int, end: int) -> str:
        if self.mode == "load":
            s = self._seqs[name]
            _check_range(name, start, end, len(s))
            return s[start:end]

        entry = self._fai[name]
        _check_range(name, start, end, entry.length)
        parts: List[str] = []
        with open(self.path, "rb") as f:
            for off, n_bases in _byte_chunks(entry, start, end):
                f.seek(off)
                parts.append(f.read(n_bases).decode("ascii"))
        return "".join(parts)
