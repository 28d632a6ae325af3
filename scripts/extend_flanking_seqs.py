#!/usr/bin/env python3
"""
Extend the sequence ranges named in a cross_match / RepeatMasker file.

Each aligned query must be named id_start_end[_R] or id:start-end[_R] after
the genomic range it was cut from. Every hit is widened by the requested
flanks, overlapping ranges are collapsed, and the resulting regions are
extracted from the assembly and written as FASTA.

Usage:
    python scripts/extend_flanking_seqs.py \
        --database genome.2bit \
        --input rnd-2_family-1.out \
        --output rnd-2_family-1.extended.fa \
        --flank 100 --gap 10
"""

import argparse
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from flanking import (
    ExtensionConfig,
    FlankExtensionError,
    FlankExtensionPipeline,
    OrientationPolicy,
)
from flanking.utils.genome_store import FastaGenomeStore, TwoBitGenomeStore

logger = logging.getLogger(__name__)


def open_store(database: str, tools_dir: str = None):
    """Pick the store from the assembly's file extension."""
    if database.endswith(".2bit"):
        return TwoBitGenomeStore(database, tools_dir=tools_dir)
    return FastaGenomeStore(database)


def build_config(args: argparse.Namespace) -> ExtensionConfig:
    left_flank = right_flank = 100
    if args.flank is not None:
        left_flank = right_flank = args.flank
    else:
        if args.left_flank is not None:
            left_flank = args.left_flank
        if args.right_flank is not None:
            right_flank = args.right_flank

    return ExtensionConfig(
        left_flank=left_flank,
        right_flank=right_flank,
        gap_tolerance=args.gap,
        orientation_policy=OrientationPolicy(args.orientation_policy),
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extend sequence ranges defined by a cross_match file",
    )
    parser.add_argument(
        "-d", "--database", required=True,
        help="Assembly as a .2bit file or FASTA",
    )
    parser.add_argument(
        "-i", "--input", required=True,
        help="Alignments in cross_match / RepeatMasker format",
    )
    parser.add_argument(
        "-o", "--output", required=True,
        help="Output FASTA file ('-' for stdout)",
    )
    parser.add_argument(
        "-f", "--flank", type=int,
        help="Flank on both sides; overrides --left-flank/--right-flank",
    )
    parser.add_argument(
        "-l", "--left-flank", type=int,
        help="Left (5') flank (default: 100)",
    )
    parser.add_argument(
        "-r", "--right-flank", type=int,
        help="Right (3') flank (default: 100)",
    )
    parser.add_argument(
        "-g", "--gap", type=int, default=0,
        help="Merge ranges separated by at most this many bases (default: 0)",
    )
    parser.add_argument(
        "--orientation-policy",
        choices=[policy.value for policy in OrientationPolicy],
        default=OrientationPolicy.EITHER.value,
        help="How identifier suffix and strand column combine (default: either)",
    )
    parser.add_argument(
        "--tools-dir",
        help="Directory containing twoBitInfo and twoBitToFa",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log every hit and range",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if not os.path.exists(args.input) or os.path.getsize(args.input) == 0:
        logger.error("Must supply input alignments in cross_match format: %s", args.input)
        return 1

    try:
        config = build_config(args)
        store = open_store(args.database, args.tools_dir)
        pipeline = FlankExtensionPipeline(store, config)
        result = pipeline.run_file(args.input)
        pipeline.write(result, args.output)
    except (FlankExtensionError, FileNotFoundError, RuntimeError, ValueError) as e:
        logger.error("%s", e)
        return 1

    print(result.stats.summary(), file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
