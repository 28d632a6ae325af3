#!/usr/bin/env python3
"""
Example: Extending aligned repeat copies with flanking sequence

Runs on a small in-memory genome, so no assembly files are needed.
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from flanking import (
    ExtensionConfig,
    FlankExtensionPipeline,
    RangeCollapser,
    RangeExtender,
    hit_local_sequence,
    requests_to_dataframe,
)
from flanking.hit_parser import HitRecordParser
from flanking.utils.genome_store import InMemoryGenomeStore


GENOME = InMemoryGenomeStore({
    "chr1": ("ACGTTGCAAT" * 60)[:600],
    "chr2": ("GGATCCTTAG" * 30)[:300],
})

ALIGNMENTS = [
    "  2514  8.77 1.46 0.58  chr1_101_200  1  100 (0)  rnd-1_family-1#DNA  (10)  6866  6522\n",
    "  1980 10.20 0.00 1.10  chr1_260_181  5   80 (0)  C  rnd-1_family-1#DNA  (4)  500  420\n",
    "   870 15.00 2.00 0.00  chr2:20-90_R  1   71 (0)  C  rnd-1_family-1#DNA  (0)  300  230\n",
]


def example_1_pipeline():
    """Example 1: One call from alignment lines to flanked sequences"""
    print("=" * 80)
    print("Example 1: Pipeline")
    print("=" * 80)

    pipeline = FlankExtensionPipeline(GENOME, ExtensionConfig.symmetric(50))
    result = pipeline.run_lines(ALIGNMENTS)

    for record in result.records:
        print(f">{record.output_id}  ({len(record.sequence)} bp, "
              f"{record.merged_range.member_count} alignments)")
    print()
    print(result.stats.summary())
    print()
    return result


def example_2_step_by_step():
    """Example 2: Running the stages by hand"""
    print("=" * 80)
    print("Example 2: Step by Step")
    print("=" * 80)

    hits = HitRecordParser(length_oracle=GENOME).parse_lines(ALIGNMENTS)
    extender = RangeExtender(GENOME, left_flank=80, right_flank=20)
    requests = extender.extend_all(hits)

    collapse = RangeCollapser(gap_tolerance=10).collapse(requests)
    for merged in collapse.merged_ranges():
        print(f"{merged.source_id}:{merged.start}-{merged.end} "
              f"({merged.representative_orientation.value}) <- alignments {collapse.members(merged)}")

    print()
    print(requests_to_dataframe(requests).to_string(index=False))
    print()


def example_3_per_hit_sequence(result):
    """Example 3: Recovering each alignment's own span from a shared region"""
    print("=" * 80)
    print("Example 3: Per-Alignment Sequence")
    print("=" * 80)

    by_range = {record.merged_range: record for record in result.records}
    for index, request in enumerate(result.requests):
        record = by_range[result.collapse.range_for(index)]
        sequence = hit_local_sequence(record, request)
        print(f"{request.source_id}:{request.start}-{request.end} "
              f"{request.orientation.value} {sequence[:30]}...")
    print()


if __name__ == "__main__":
    pipeline_result = example_1_pipeline()
    example_2_step_by_step()
    example_3_per_hit_sequence(pipeline_result)
