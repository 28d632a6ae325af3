# Flanking sequence extension engine

from .config import (
    ExtensionConfig,
    OrientationPolicy,
)
from .errors import (
    FlankExtensionError,
    MalformedIdentifierError,
    ExtractionMismatchError,
)
from .hit_parser import (
    HitRecord,
    HitRecordParser,
    hit_genome_interval,
    resolve_orientation,
)
from .range_extender import (
    ExtensionRequest,
    RangeExtender,
    extend,
    extend_forward,
    extend_reverse,
    requests_to_dataframe,
)
from .range_collapser import (
    MergedRange,
    CollapseResult,
    RangeCollapser,
    representative_orientation,
)
from .sequence_assembler import (
    FlankedSequenceRecord,
    SequenceAssembler,
    hit_local_sequence,
    index_extracted,
    output_id_for,
    to_store_batch,
)
from .pipeline import (
    ExtensionStats,
    ExtensionResult,
    FlankExtensionPipeline,
)
# Re-export utility types from .utils.parsers for convenience
from .utils.parsers import (
    Orientation,
    reverse_complement,
)
