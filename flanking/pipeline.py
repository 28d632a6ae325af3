"""
Flank Extension Pipeline

Runs one batch end to end:

    parse hits -> extend -> collapse -> extract (one store call) -> assemble -> write

Either the whole output set is produced or the run raises; the output file is
only replaced once every range has been assembled.

Usage:
    store = TwoBitGenomeStore("genome.2bit")
    pipeline = FlankExtensionPipeline(store, ExtensionConfig.symmetric(100))
    result = pipeline.run_file("family.out")
    pipeline.write(result, "family-extended.fa")
    print(result.stats.summary())
"""

import logging
import os
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .utils.parsers import write_fasta
from .config import ExtensionConfig
from .hit_parser import HitRecord, HitRecordParser
from .range_collapser import CollapseResult, RangeCollapser
from .range_extender import ExtensionRequest, RangeExtender
from .sequence_assembler import (
    FlankedSequenceRecord,
    SequenceAssembler,
    index_extracted,
    to_store_batch,
)

logger = logging.getLogger(__name__)


@dataclass
class ExtensionStats:
    """Edge statistics and warning counts for one run"""
    alignments: int = 0
    sequence_regions: int = 0       # regions extracted and written
    unextracted_regions: int = 0    # regions on unknown sequences
    left_needed: int = 0            # hits whose query lacked a full left flank
    right_needed: int = 0
    left_terminal: int = 0          # left flanks clipped at a sequence end
    right_terminal: int = 0
    unknown_sequences: int = 0
    ambiguous_orientations: int = 0
    skipped_lines: int = 0

    def summary(self) -> str:
        lines = [
            "Multiple Alignment Edge Stats:",
            f"  Sequence Regions : {self.sequence_regions}",
            f"  Alignments : {self.alignments}",
            f"    Left  Edge: {self.left_needed} aligned sequences needed extension, "
            f"{self.left_terminal} sequences were unextendable",
            f"    Right Edge: {self.right_needed} aligned sequences needed extension, "
            f"{self.right_terminal} sequences were unextendable",
            "  * There may be 1 or more alignments per sequence region",
        ]
        if self.unknown_sequences:
            lines.append(f"  Warning: {self.unknown_sequences} alignments on unknown sequences were not extended")
        if self.unextracted_regions:
            lines.append(f"  Warning: {self.unextracted_regions} regions on unknown sequences were not extracted")
        if self.ambiguous_orientations:
            lines.append(f"  Warning: {self.ambiguous_orientations} alignments had conflicting orientation markers")
        return "\n".join(lines)


@dataclass
class ExtensionResult:
    """Everything one run produced"""
    records: List[FlankedSequenceRecord]
    requests: List[ExtensionRequest]
    collapse: CollapseResult
    stats: ExtensionStats = field(default_factory=ExtensionStats)


class FlankExtensionPipeline:
    """
    Drive the parser, extender, collapser and assembler over one batch.

    Attributes:
        store: GenomeStore providing lengths and extraction
        config (ExtensionConfig): Flank sizes, gap tolerance, orientation policy
    """

    def __init__(self, store, config: Optional[ExtensionConfig] = None):
        self.store = store
        self.config = config or ExtensionConfig()

    def _parser(self) -> HitRecordParser:
        return HitRecordParser(
            length_oracle=self.store,
            orientation_policy=self.config.orientation_policy
        )

    def run_file(self, path: Union[str, Path]) -> ExtensionResult:
        parser = self._parser()
        hits = parser.parse_file(path)
        return self.run_hits(hits, parser)

    def run_lines(self, lines: Iterable[str]) -> ExtensionResult:
        parser = self._parser()
        hits = parser.parse_lines(lines)
        return self.run_hits(hits, parser)

    def run_hits(self, hits: List[HitRecord],
                 parser: Optional[HitRecordParser] = None) -> ExtensionResult:
        """
        Extend, collapse, extract and assemble already parsed hits.

        Raises:
            ExtractionMismatchError: If the store's results do not match the requested ranges
        """
        extender = RangeExtender(
            self.store,
            left_flank=self.config.left_flank,
            right_flank=self.config.right_flank
        )
        requests = extender.extend_all(hits)

        collapse = RangeCollapser(self.config.gap_tolerance).collapse(requests)

        # Ranges on sequences the store lacks stay in the collapse result but cannot be extracted
        extractable = {
            source_id: merged for source_id, merged in collapse.ranges.items()
            if self.store.length_of(source_id) is not None
        }
        unextracted = collapse.total_regions - sum(len(merged) for merged in extractable.values())
        if unextracted:
            logger.warning("%d regions on unknown sequences were not extracted", unextracted)
        ranges = [merged for group in extractable.values() for merged in group]

        results = self.store.extract(to_store_batch(ranges))
        extracted = index_extracted(ranges, results)
        records = SequenceAssembler().assemble(extractable, extracted)

        stats = ExtensionStats(
            alignments=len(requests),
            sequence_regions=len(ranges),
            unextracted_regions=unextracted,
            left_needed=extender.left_needed,
            right_needed=extender.right_needed,
            left_terminal=extender.left_terminal,
            right_terminal=extender.right_terminal,
            unknown_sequences=extender.unknown_length,
        )
        if parser is not None:
            stats.ambiguous_orientations = parser.ambiguous_orientations
            stats.skipped_lines = parser.skipped_lines

        logger.info("Extended %d alignments into %d regions", stats.alignments, stats.sequence_regions)
        return ExtensionResult(
            records=records,
            requests=requests,
            collapse=collapse,
            stats=stats
        )

    @staticmethod
    def write(result: ExtensionResult, output_path: Union[str, Path]) -> int:
        """
        Write the records as FASTA; '-' or 'stdout' writes to standard output.

        The file is written next to its destination and renamed into place, so
        a failed write leaves no partial output behind.

        Returns:
            Number of records written
        """
        if str(output_path) in ("-", "stdout"):
            return write_fasta(result.records, sys.stdout)

        output_path = Path(output_path)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
        try:
            with os.fdopen(fd, "w") as f:
                written = write_fasta(result.records, f)
            os.replace(tmp_path, output_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info("Wrote %d sequences to %s", written, output_path)
        return written
