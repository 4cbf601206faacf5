# wgalib/utils/textio.py
from __future__ import annotations

import io
import os
from typing import Callable, Iterable, Iterator, Optional, Sequence, TextIO, TypeVar, Union

__all__ = ["Source", "Sink", "as_lines", "write_to_sink", "format_score"]

T = TypeVar("T")

Source = Union[str, TextIO, Sequence[str]]   # path | text blob | file-like | sequence of lines
Sink = Optional[Union[str, TextIO]]          # path | file-like | None (return string)


def as_lines(source: Source) -> Iterator[str]:
    """
    Yield lines from:
      - path (str naming an existing file),
      - text blob (any other str),
      - file-like (TextIO),
      - sequence[str]
    """
    if isinstance(source, str):
        if os.path.isfile(source):
            with open(source, "r", encoding="utf-8") as fh:
                yield from fh
        else:
            yield from io.StringIO(source)
    else:
        yield from source


def write_to_sink(writer: Callable[[Iterable[T], TextIO], object], items: Iterable[T], sink: Sink) -> str:
    """Run `writer` against a path, a file-like, or a buffer whose text is returned."""
    if sink is None:
        buf = io.StringIO()
        writer(items, buf)
        return buf.getvalue()
    if isinstance(sink, str):
        with open(sink, "wt", encoding="utf-8") as out:
            writer(items, out)
        return ""
    if hasattr(sink, "write"):
        writer(items, sink)
        return ""
    raise TypeError("sink must be a path string, a file-like with .write, or None")


def format_score(score: float) -> str:
    """Render integral scores without a trailing '.0'."""
    return str(int(score)) if float(score).is_integer() else repr(float(score))
