# wgalib/__init__.py
__version__ = "0.1.0"

from .errors import WgaError, ParseError, SequenceLookupUnavailable
from .models.strand import Strand
from .models.record import RecStat, AlignRecord, natural_key, sort_records
from .formats.cigar import CigarOp, CigarRun, Cigar, derive_cigar, parse_cigar
from .formats.maf import MafRow, MafBlock, MafReader, slice_block
from .formats.paf import PafRecord
from .formats.chain import ChainBlock, ChainRecord
from .formats.maf_index import build_index, extract_region

# Convenience re-exports for direct functional use (optional)
from .convert import (
    maf_to_paf,
    maf_to_chain,
    paf_to_maf,
    paf_to_chain,
    chain_to_maf,
    chain_to_paf,
)
from .sequences.base import SequenceSource, DictSequenceSource
