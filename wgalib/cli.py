#!/usr/bin/env python3
# wgalib/cli.py
from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import ExitStack, contextmanager
from typing import Iterable, Iterator, Optional, Sequence, TextIO, Tuple, TypeVar

from . import __version__
from .convert import chain_to_maf, chain_to_paf, maf_to_chain, maf_to_paf, paf_to_chain, paf_to_maf
from .errors import InvalidRegion, WgaError
from .formats import chain, maf, paf
from .formats.maf_index import build_index, extract_region, load_index, write_index
from .models.record import sort_records
from .sequences.fasta import FastaSequenceSource

_log = logging.getLogger("wgalib")

T = TypeVar("T")

# name -> (aliases, input format, output format, needs FASTA)
_CONVERSIONS = {
    "maf2paf":   (["m2p"], "maf",   "paf",   False),
    "maf2chain": (["m2c"], "maf",   "chain", False),
    "paf2maf":   (["p2m"], "paf",   "maf",   True),
    "paf2chain": (["p2c"], "paf",   "chain", False),
    "chain2maf": (["c2m"], "chain", "maf",   True),
    "chain2paf": (["c2p"], "chain", "paf",   False),
}

_READERS = {"maf": maf.decode, "paf": paf.decode, "chain": chain.decode}
_WRITERS = {"maf": maf.encode, "paf": paf.encode, "chain": chain.encode}

# (records, target FASTA, query FASTA) -> converted records
_CONVERTERS = {
    "maf2paf":   lambda recs, t, q: maf_to_paf(recs),
    "maf2chain": lambda recs, t, q: maf_to_chain(recs),
    "paf2maf":   paf_to_maf,
    "paf2chain": lambda recs, t, q: paf_to_chain(recs),
    "chain2maf": chain_to_maf,
    "chain2paf": chain_to_paf,
}

# ---------- CLI ----------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="wgatools",
        description="Convert and index whole-genome alignment files (MAF / PAF / Chain).",
    )
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    g = p.add_argument_group("global")
    g.add_argument("-o", "--outfile", default="-", help="Output file ('-' for stdout, default).")
    g.add_argument("-r", "--rewrite", action="store_true",
                   help="Overwrite the output file if it exists.")
    g.add_argument("-t", "--threads", type=int, default=1,
                   help="Worker threads (default 1).")
    g.add_argument("-v", "--verbose", action="count", default=0,
                   help="More logging; repeat for debug output.")

    sub = p.add_subparsers(dest="command", required=True, metavar="COMMAND")

    for name, (aliases, src, dst, needs_fasta) in _CONVERSIONS.items():
        sp = sub.add_parser(name, aliases=aliases,
                            help=f"Convert {src.upper()} to {dst.upper()}")
        sp.add_argument("input", nargs="?", default=None,
                        help=f"Input {src.upper()} file; stdin when absent.")
        if needs_fasta or name == "chain2paf":
            need = "required" if needs_fasta else "optional, enables match/mismatch counts"
            sp.add_argument("-t", "--target", required=needs_fasta, help=f"Target FASTA ({need}).")
            sp.add_argument("-q", "--query", required=needs_fasta, help=f"Query FASTA ({need}).")
        sp.add_argument("--sort", action="store_true",
                        help="Sort records by target name (natural order) then target start.")
        sp.add_argument("--skip-invalid", action="store_true",
                        help="Log and skip malformed records instead of stopping.")
        sp.set_defaults(func=run_convert, conversion=name, src=src, dst=dst)

    sp = sub.add_parser("maf-index", help="Build a JSON offset index for a MAF file")
    sp.add_argument("input", help="Input MAF file.")
    sp.set_defaults(func=run_index)

    sp = sub.add_parser("maf-extract", help="Extract a region from an indexed MAF file")
    sp.add_argument("input", help="Input MAF file.")
    sp.add_argument("region", help="Region as name:start-end (0-based, half-open).")
    sp.add_argument("-i", "--index", default=None,
                    help="Index file (default: <input>.index.json).")
    sp.set_defaults(func=run_extract)

    return p


def parse_region(text: str) -> Tuple[str, int, int]:
    name, sep, span = text.rpartition(":")
    start, dash, end = span.partition("-")
    if not sep or not dash or not name:
        raise InvalidRegion(f"region {text!r} is not name:start-end")
    try:
        lo, hi = int(start.replace(",", "")), int(end.replace(",", ""))
    except ValueError:
        raise InvalidRegion(f"region {text!r} has a non-numeric bound") from None
    if lo < 0 or hi < lo:
        raise InvalidRegion(f"region {text!r} has an invalid range")
    return name, lo, hi


# ---------- helpers: IO wrappers ----------

def _open_in(stack: ExitStack, path: Optional[str]) -> TextIO:
    if path is None or path == "-":
        return sys.stdin
    return stack.enter_context(open(path, "r", encoding="utf-8"))


@contextmanager
def _output(path: str, rewrite: bool) -> Iterator[TextIO]:
    """Write to <path>.tmp and move it over path only when the body succeeds."""
    if path == "-":
        yield sys.stdout
        return
    if os.path.exists(path) and not rewrite:
        raise FileExistsError(f"{path} exists; pass --rewrite to overwrite it")
    tmp = path + ".tmp"
    try:
        with open(tmp, "w", encoding="utf-8") as out:
            yield out
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def _counted(items: Iterable[T], counter: list) -> Iterator[T]:
    for x in items:
        counter[0] += 1
        yield x


# ---------- commands ----------

def run_convert(args: argparse.Namespace) -> int:
    target_seqs = query_seqs = None
    if getattr(args, "target", None) and getattr(args, "query", None):
        target_seqs = FastaSequenceSource(args.target)
        query_seqs = FastaSequenceSource(args.query)
    elif getattr(args, "target", None) or getattr(args, "query", None):
        _log.warning("both --target and --query are needed to use sequences; ignoring the one given")

    with ExitStack() as stack:
        src = _open_in(stack, args.input)
        errors = "skip" if args.skip_invalid else "strict"
        records: Iterable = _READERS[args.src](src, errors=errors)
        if args.sort:
            records = sort_records(records)

        n_in = [0]
        convert = _CONVERTERS[args.conversion]
        out_records = convert(_counted(records, n_in), target_seqs, query_seqs)

        out = stack.enter_context(_output(args.outfile, args.rewrite))
        _WRITERS[args.dst](out_records, sink=out)
    _log.info("%s: converted %d record(s)", args.conversion, n_in[0])
    return 0


def run_index(args: argparse.Namespace) -> int:
    with open(args.input, "rb") as fh:
        idx = build_index(maf.MafReader(fh))
    path = args.input + ".index.json" if args.outfile == "-" else args.outfile
    if os.path.exists(path) and not args.rewrite:
        raise FileExistsError(f"{path} exists; pass --rewrite to overwrite it")
    write_index(idx, path)
    _log.info("index written to %s", path)
    return 0


def run_extract(args: argparse.Namespace) -> int:
    name, start, end = parse_region(args.region)
    idx = load_index(args.index or args.input + ".index.json")
    with _output(args.outfile, args.rewrite) as out:
        maf.encode(extract_region(args.input, idx, name, start, end), sink=out)
    return 0


# ---------- main ----------

def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.threads > 1:
        _log.info("processing is single-threaded; --threads %d has no effect", args.threads)

    try:
        return args.func(args)
    except (WgaError, OSError) as e:
        _log.error("%s: %s", args.command, e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
