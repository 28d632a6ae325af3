"""
Sequence Assembler

Turns the sequences extracted for each merged range into output records named
``sourceId_start_end`` with an ``_R`` suffix when the range was reverse
complemented. Also converts merged ranges to and from the genome store's
0-based half-open convention.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .utils.genome_store import StoreRegion, format_region
from .utils.parsers import reverse_complement
from .errors import ExtractionMismatchError
from .range_collapser import MergedRange
from .range_extender import ExtensionRequest

logger = logging.getLogger(__name__)

# (source_id, start, end) in 1-based fully-closed coordinates
RangeKey = Tuple[str, int, int]


@dataclass(frozen=True)
class FlankedSequenceRecord:
    """One extracted, orientation-corrected range"""
    output_id: str
    sequence: str
    merged_range: Optional[MergedRange] = field(default=None, compare=False, repr=False)

    @property
    def is_reverse(self) -> bool:
        return self.output_id.endswith("_R")

    def to_fasta(self) -> str:
        return f">{self.output_id}\n{self.sequence}\n"


def output_id_for(merged: MergedRange) -> str:
    """'seq1_50_250', or 'seq1_50_250_R' for a reverse range."""
    output_id = f"{merged.source_id}_{merged.start}_{merged.end}"
    if merged.representative_orientation.is_reverse:
        output_id += "_R"
    return output_id


def to_store_batch(ranges: Iterable[MergedRange]) -> List[StoreRegion]:
    """Convert merged ranges to the store's 0-based half-open regions, in order."""
    return [(merged.source_id, *merged.store_interval) for merged in ranges]


def index_extracted(
    ranges: Sequence[MergedRange],
    results: Sequence[Tuple[str, str]]
) -> Dict[RangeKey, str]:
    """
    Key the store's ``(identifier, sequence)`` results by 1-based range.

    Raises:
        ExtractionMismatchError: If a range has no result or the store returned
                                 regions that were never requested
    """
    by_identifier = {identifier: sequence for identifier, sequence in results}

    extracted = {}
    missing = []
    for merged in ranges:
        identifier = format_region(merged.source_id, *merged.store_interval)
        if identifier in by_identifier:
            extracted[merged.key] = by_identifier.pop(identifier)
        else:
            missing.append(merged.key)

    if missing:
        raise ExtractionMismatchError(
            missing,
            f"store returned {len(results)} sequences for {len(ranges)} regions, missing"
        )
    if by_identifier:
        raise ExtractionMismatchError(
            [], f"store returned unrequested regions: {', '.join(sorted(by_identifier))}"
        )
    return extracted


class SequenceAssembler:
    """Build one FlankedSequenceRecord per merged range."""

    def assemble(
        self,
        ranges: Dict[str, List[MergedRange]],
        extracted: Dict[RangeKey, str]
    ) -> List[FlankedSequenceRecord]:
        """
        Assemble output records for every merged range.

        Nothing is returned unless every range has a sequence of the right length.

        Args:
            ranges: Merged ranges per source id, as produced by RangeCollapser
            extracted: Raw sequence per (source_id, start, end), 1-based fully closed

        Returns:
            Records in range order

        Raises:
            ExtractionMismatchError: On a missing or wrongly sized extraction
        """
        ordered = [merged for group in ranges.values() for merged in group]

        missing = [merged.key for merged in ordered if merged.key not in extracted]
        if missing:
            raise ExtractionMismatchError(missing)

        wrong_length = [
            merged.key for merged in ordered
            if len(extracted[merged.key]) != merged.length
        ]
        if wrong_length:
            raise ExtractionMismatchError(
                wrong_length, "extracted sequence length differs from range length"
            )

        records = []
        for merged in ordered:
            sequence = extracted[merged.key].upper()
            if merged.representative_orientation.is_reverse:
                sequence = reverse_complement(sequence)
            records.append(FlankedSequenceRecord(
                output_id=output_id_for(merged),
                sequence=sequence,
                merged_range=merged
            ))

        logger.info("Assembled %d flanked sequences", len(records))
        return records


def hit_local_sequence(record: FlankedSequenceRecord, request: ExtensionRequest) -> str:
    """
    Cut one request's own span out of a range-level record.

    The slice is returned in the request's orientation, which may differ from
    the orientation the shared range was emitted in.

    Raises:
        ValueError: If the record has no range or the range does not contain the request
    """
    merged = record.merged_range
    if merged is None or not merged.contains(request):
        raise ValueError(
            f"{request.source_id}:{request.start}-{request.end} is not part of {record.output_id}"
        )

    if merged.representative_orientation.is_reverse:
        local = record.sequence[merged.end - request.end:merged.end - request.start + 1]
    else:
        local = record.sequence[request.start - merged.start:request.end - merged.start + 1]

    if request.orientation is not merged.representative_orientation:
        local = reverse_complement(local)
    return local
