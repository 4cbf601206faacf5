# wgalib/errors.py
from __future__ import annotations

from typing import Optional

__all__ = [
    "WgaError",
    "ParseError",
    "MissingField",
    "InvalidNumber",
    "UnexpectedFieldCount",
    "UnknownStrandSymbol",
    "MissingCigarTag",
    "MalformedCigarString",
    "InvalidAlignment",
    "IndexBuildError",
    "DuplicateSequenceName",
    "InconsistentRowOrder",
    "EmptyInput",
    "SequenceLookupUnavailable",
    "SequenceNotIndexed",
    "InvalidRegion",
]


class WgaError(Exception):
    """Base class for every error raised by wgalib."""


class ParseError(WgaError, ValueError):
    """
    A single record could not be parsed or is internally inconsistent.

    Readers hand these back alongside the records they produce so callers
    may skip the bad record and keep going.
    """

    def __init__(self, message: str, *, line_no: Optional[int] = None) -> None:
        self.line_no = line_no
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)


class MissingField(ParseError):
    pass


class InvalidNumber(ParseError):
    pass


class UnexpectedFieldCount(ParseError):
    pass


class UnknownStrandSymbol(ParseError):
    pass


class MissingCigarTag(ParseError):
    pass


class MalformedCigarString(ParseError):
    pass


class InvalidAlignment(ParseError):
    """Gapped rows or coordinates that cannot describe a valid alignment."""


class IndexBuildError(WgaError):
    """Structural problem that aborts a whole MAF index build."""


class DuplicateSequenceName(IndexBuildError):
    pass


class InconsistentRowOrder(IndexBuildError):
    pass


class EmptyInput(IndexBuildError):
    pass


class SequenceLookupUnavailable(WgaError):
    """A conversion needs original bases but no sequence source was given."""


class SequenceNotIndexed(WgaError):
    """A region names a sequence the MAF index does not hold."""


class InvalidRegion(WgaError):
    """Region text is not name:start-end with 0 <= start <= end."""
