"""
Hit Record Parser

Turns cross_match / RepeatMasker alignment lines into HitRecord objects in
genome coordinates. The query identifier tells where the aligned subsequence
was cut from its source sequence; the alignment start/end are positions inside
that subsequence.

Usage:
    parser = HitRecordParser(length_oracle=store)
    hits = parser.parse_file("rnd-2_family-1.out")
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .utils.parsers import (
    CrossmatchHit,
    Orientation,
    SequenceIdentifier,
    decompose_identifier,
    parse_crossmatch_line,
)
from .config import OrientationPolicy
from .errors import MalformedIdentifierError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HitRecord:
    """One aligner hit in genome coordinates"""
    source_id: str              # Sequence the query was cut from
    hit_start: int              # Genome start (1-based, fully closed)
    hit_end: int                # Genome end (1-based, fully closed)
    orientation: Orientation
    leading_unaligned: int = 0  # Query bases before the aligned span
    trailing_unaligned: int = 0 # Query bases after the aligned span
    raw_id: str = ""
    line_number: int = 0

    @property
    def length(self) -> int:
        return self.hit_end - self.hit_start + 1


def hit_genome_interval(
    identifier: SequenceIdentifier,
    align_start: int,
    align_end: int
) -> Tuple[int, int]:
    """
    Map query alignment positions onto the source sequence.

    A reverse identifier means the query runs from offset_end down to
    offset_start, so query position 1 sits at offset_end.

    Examples:
        rec 100-200 (+), hit 1-10  ->  100-109
        rec 100-200 (-), hit 1-10  ->  191-200
    """
    if identifier.reverse:
        return (identifier.offset_end - align_end + 1,
                identifier.offset_end - align_start + 1)
    return (identifier.offset_start + align_start - 1,
            identifier.offset_start + align_end - 1)


def resolve_orientation(
    identifier_reverse: bool,
    strand_reverse: bool,
    policy: OrientationPolicy = OrientationPolicy.EITHER
) -> Orientation:
    """Combine the identifier and strand-column signals into one orientation."""
    if policy is OrientationPolicy.STRAND:
        reverse = strand_reverse
    elif policy is OrientationPolicy.RELATIVE:
        reverse = identifier_reverse != strand_reverse
    else:
        reverse = identifier_reverse or strand_reverse
    return Orientation.REVERSE if reverse else Orientation.FORWARD


class HitRecordParser:
    """
    Parse alignment lines into HitRecord objects.

    Lines that are not hit lines are skipped. A hit line whose identifier does
    not encode a range aborts parsing with MalformedIdentifierError. Unknown
    sequences and conflicting orientation markers are logged and counted.

    Attributes:
        skipped_lines (int): Non-blank lines that were not hit lines
        unknown_sequences (int): Hits whose source id the length oracle lacks
        ambiguous_orientations (int): Hits whose two orientation signals disagree
    """

    def __init__(self, length_oracle=None,
                 orientation_policy: OrientationPolicy = OrientationPolicy.EITHER):
        """
        Parameters:
            length_oracle: Object with ``length_of(source_id)``, e.g. a GenomeStore.
                           When None, no unknown-sequence check is made.
            orientation_policy: How to combine the two orientation signals.
        """
        self.length_oracle = length_oracle
        self.orientation_policy = orientation_policy
        self.skipped_lines = 0
        self.unknown_sequences = 0
        self.ambiguous_orientations = 0

    def parse(self, line: str, line_number: int = 0) -> Optional[HitRecord]:
        """Parse one line; None means the line is not a hit."""
        if not line.strip():
            return None

        hit = parse_crossmatch_line(line, line_number)
        if hit is None:
            self.skipped_lines += 1
            return None
        return self.from_crossmatch(hit)

    def from_crossmatch(self, hit: CrossmatchHit) -> HitRecord:
        identifier = decompose_identifier(hit.identifier)
        if identifier is None:
            raise MalformedIdentifierError(hit.identifier, hit.line_number)

        hit_start, hit_end = hit_genome_interval(identifier, hit.align_start, hit.align_end)

        if identifier.reverse != hit.complement:
            self.ambiguous_orientations += 1
            logger.warning(
                "Line %d: %s has %s identifier but %s strand",
                hit.line_number, hit.identifier,
                "reverse" if identifier.reverse else "forward",
                "complement" if hit.complement else "forward"
            )
        orientation = resolve_orientation(
            identifier.reverse, hit.complement, self.orientation_policy
        )

        if self.length_oracle is not None and \
                self.length_oracle.length_of(identifier.source_id) is None:
            self.unknown_sequences += 1
            logger.warning(
                "Line %d: sequence '%s' not found in sequence index, flanks will not be added",
                hit.line_number, identifier.source_id
            )

        logger.debug(
            "SeqRecord: %s:%d-%d (%s) <=> Alignment: %d-%d [%d] (%s)",
            identifier.source_id, identifier.offset_start, identifier.offset_end,
            "-" if identifier.reverse else "+",
            hit.align_start, hit.align_end, hit.bases_remaining,
            "-" if hit.complement else "+"
        )

        return HitRecord(
            source_id=identifier.source_id,
            hit_start=hit_start,
            hit_end=hit_end,
            orientation=orientation,
            leading_unaligned=hit.align_start - 1,
            trailing_unaligned=hit.bases_remaining,
            raw_id=hit.identifier,
            line_number=hit.line_number
        )

    def parse_lines(self, lines: Iterable[str]) -> List[HitRecord]:
        """Parse every line; line numbers start at 1."""
        records = []
        for line_number, line in enumerate(lines, start=1):
            record = self.parse(line, line_number)
            if record is not None:
                records.append(record)
        return records

    def parse_file(self, path: Union[str, Path]) -> List[HitRecord]:
        """
        Parse a cross_match / RepeatMasker file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            MalformedIdentifierError: On the first hit with an unusable identifier
        """
        if not Path(path).exists():
            raise FileNotFoundError(f"Alignment file not found: {path}")

        with open(path, 'r') as f:
            records = self.parse_lines(f)
        logger.info("Parsed %d hits from %s", len(records), path)
        return records
