# Utility functions for flanking sequence extension

from .parsers import (
    # Data classes
    Orientation,
    SequenceIdentifier,
    CrossmatchHit,
    FastaRecord,
    # Identifier parsers
    decompose_identifier,
    # cross_match / RepeatMasker parsers
    parse_crossmatch_line,
    # FASTA parsers
    parse_fasta,
    iter_fasta,
    iter_fasta_handle,
    write_fasta,
    # Sequence utilities
    reverse_complement,
)

from .genome_store import (
    GenomeStore,
    InMemoryGenomeStore,
    FastaGenomeStore,
    TwoBitGenomeStore,
    format_region,
)
