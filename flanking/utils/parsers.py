"""
Parsers Module for Flanking Sequence Extension

A collection of parsers for the file formats the extension engine reads and writes:
- cross_match / RepeatMasker style alignment summaries (.out, .align)
- Sequence identifiers that encode a genomic subrange (id_start_end[_R], id:start-end[_R])
- FASTA files

Usage:
    from flanking.utils.parsers import parse_crossmatch_line, decompose_identifier, parse_fasta
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, TextIO, Union


# ============================================
# Data Classes
# ============================================

class Orientation(Enum):
    """Strand of a hit relative to its source sequence"""
    FORWARD = "+"
    REVERSE = "-"

    @property
    def is_reverse(self) -> bool:
        return self is Orientation.REVERSE


@dataclass(frozen=True)
class SequenceIdentifier:
    """A query identifier decomposed into its source sequence and offsets"""
    source_id: str
    offset_start: int   # 1-based, always <= offset_end
    offset_end: int     # 1-based, fully closed
    reverse: bool       # descending offsets or an explicit _R suffix

    @property
    def length(self) -> int:
        return self.offset_end - self.offset_start + 1


@dataclass(frozen=True)
class CrossmatchHit:
    """One summary line of a cross_match / RepeatMasker alignment"""
    identifier: str         # Query identifier as written
    align_start: int        # Query alignment start (1-based)
    align_end: int          # Query alignment end (1-based)
    bases_remaining: int    # Query bases after the aligned span
    complement: bool        # True when the strand column reads 'C'
    subject: Optional[str] = None
    line_number: int = 0


@dataclass
class FastaRecord:
    """Represents a FASTA sequence record"""
    header: str
    sequence: str

    @property
    def id(self) -> str:
        """Extract ID (first word) from header"""
        return self.header.split()[0]

    @property
    def length(self) -> int:
        return len(self.sequence)


# ============================================
# Identifier Parsers
# ============================================

_UNDERSCORE_ID = re.compile(r'^(\S+)_(\d+)_(\d+)_?(R)?$')
_COLON_ID = re.compile(r'^(\S+):(\d+)-(\d+)_?(R)?$')


def decompose_identifier(identifier: str) -> Optional[SequenceIdentifier]:
    """
    Split a range-encoding identifier into source id, offsets and orientation.

    Both forms carry 1-based fully-closed offsets:
        'seq1_100_200'      -> seq1, 100..200, forward
        'seq1_300_200_R'    -> seq1, 200..300, reverse
        'chr2:5000-6000_R'  -> chr2, 5000..6000, reverse

    Descending offsets mark the identifier as reverse even without the suffix.

    Args:
        identifier: Query identifier from an alignment line

    Returns:
        SequenceIdentifier, or None if the identifier encodes no range
    """
    match = _UNDERSCORE_ID.match(identifier) or _COLON_ID.match(identifier)
    if match is None:
        return None

    source_id, first, second, suffix = match.groups()
    first = int(first)
    second = int(second)
    reverse = suffix == 'R'

    # Keep offsets in low to high order
    if first > second:
        first, second = second, first
        reverse = True

    return SequenceIdentifier(
        source_id=source_id,
        offset_start=first,
        offset_end=second,
        reverse=reverse
    )


# ============================================
# cross_match / RepeatMasker Parsers
# ============================================

# score  div  del  ins  query  qstart  qend  (qremain)  [C|+]  subject ...
#   2514  8.77 1.46 0.58  DS497995.1:134929-141580_R  6360  6701 (50)  C rnd-2_family-1#LINE/L1  (10)  6866  6522
_HIT_LINE = re.compile(
    r'^\s*\d+\s+\d+(?:\.\d+)?\s+\d+(?:\.\d+)?\s+\d+(?:\.\d+)?\s+'
    r'(?P<identifier>\S+)\s+(?P<start>\d+)\s+(?P<end>\d+)\s+'
    r'\((?P<remaining>\d+)\)'
    r'(?:\s+(?P<strand>[C+])(?=\s|$))?'
    r'(?:\s+(?P<subject>\S+))?'
)


def parse_crossmatch_line(line: str, line_number: int = 0) -> Optional[CrossmatchHit]:
    """
    Parse a single cross_match / RepeatMasker alignment summary line.

    Headers, separators, alignment bodies and any other free text are not hits
    and yield None.

    Args:
        line: A single line from a .out or .align file
        line_number: 1-based position of the line in its file

    Returns:
        CrossmatchHit object or None if the line is not a hit line
    """
    match = _HIT_LINE.match(line)
    if match is None:
        return None

    return CrossmatchHit(
        identifier=match.group('identifier'),
        align_start=int(match.group('start')),
        align_end=int(match.group('end')),
        bases_remaining=int(match.group('remaining')),
        complement=match.group('strand') == 'C',
        subject=match.group('subject'),
        line_number=line_number
    )



# ============================================
# FASTA Parsers
# ============================================

def iter_fasta(fasta_path: Union[str, Path]) -> Iterator[FastaRecord]:
    """
    Iterate over FASTA records without loading entire file into memory.

    Args:
        fasta_path: Path to FASTA file

    Yields:
        FastaRecord objects
    """
    with open(fasta_path, 'r') as f:
        yield from iter_fasta_handle(f)


def iter_fasta_handle(handle: Iterable[str]) -> Iterator[FastaRecord]:
    """Iterate over FASTA records from an open handle or any iterable of lines."""
    current_header = None
    current_seq = []

    for line in handle:
        if line.startswith('>'):
            if current_header is not None:
                yield FastaRecord(
                    header=current_header,
                    sequence=''.join(current_seq)
                )
            current_header = line[1:].strip()
            current_seq = []
        elif current_header is not None:
            current_seq.append(''.join(line.split()))

    if current_header is not None:
        yield FastaRecord(
            header=current_header,
            sequence=''.join(current_seq)
        )


def parse_fasta(fasta_path: Union[str, Path]) -> Dict[str, str]:
    """
    Parse a FASTA file into a dictionary.

    Args:
        fasta_path: Path to FASTA file

    Returns:
        Dict mapping sequence_id -> sequence
    """
    return {record.id: record.sequence for record in iter_fasta(fasta_path)}


def write_fasta(records: Iterable, handle: TextIO) -> int:
    """
    Write records as unwrapped FASTA.

    Each record needs an ``output_id`` (or ``header``) and a ``sequence``.
    Sequences are written on a single line; downstream tools rely on it.

    Args:
        records: Records to write
        handle: Open text handle

    Returns:
        Number of records written
    """
    written = 0
    for record in records:
        header = getattr(record, 'output_id', None) or record.header
        handle.write(f">{header}\n{record.sequence}\n")
        written += 1
    return written


# ============================================
# Sequence Utilities
# ============================================

_COMPLEMENT = str.maketrans(
    'ACGTYRMKHDBVacgtyrmkhdbv',
    'TGCARYKMDHVBtgcarykmdhvb'
)


def reverse_complement(sequence: str) -> str:
    """
    Return the reverse complement of a DNA sequence.

    Handles the IUPAC ambiguity codes (R/Y, M/K, B/V, D/H). Self-complementary
    codes (N, W, S) and any unrecognized characters pass through unchanged.

    Args:
        sequence: DNA sequence string

    Returns:
        Reverse complement sequence
    """
    return sequence.translate(_COMPLEMENT)[::-1]

