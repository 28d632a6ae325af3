"""
Range Extender

Widens each hit by a left and right flank, clipped to the bounds of its source
sequence. Flanks are given in the hit's own orientation: for a reverse hit the
left (5') flank lies at the higher genome coordinate.

    forward hit 100-200, flanks (50, 10)  ->  50-210
    reverse hit 100-200, flanks (50, 10)  ->  90-250
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .utils.parsers import Orientation
from .hit_parser import HitRecord

try:
    import pandas as pd
    PANDAS_AVAILABLE = True
except ImportError:
    PANDAS_AVAILABLE = False

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtensionRequest:
    """One hit's extended interval (1-based, fully closed)"""
    source_id: str
    ext_start: int
    ext_end: int
    orientation: Orientation
    was_left_terminal: bool = False   # left flank clipped at a sequence end
    was_right_terminal: bool = False  # right flank clipped at a sequence end
    length_known: bool = True
    hit: Optional[HitRecord] = field(default=None, compare=False, repr=False)

    @property
    def start(self) -> int:
        return self.ext_start

    @property
    def end(self) -> int:
        return self.ext_end

    @property
    def length(self) -> int:
        return self.ext_end - self.ext_start + 1


# (ext_start, ext_end, left_terminal, right_terminal)
Extension = Tuple[int, int, bool, bool]


def extend_forward(hit_start: int, hit_end: int, left_flank: int,
                   right_flank: int, sequence_length: int) -> Extension:
    """Left flank grows the low end, right flank grows the high end."""
    wanted_start = hit_start - left_flank
    wanted_end = hit_end + right_flank
    return (
        max(1, wanted_start),
        min(sequence_length, wanted_end),
        wanted_start < 1,
        wanted_end > sequence_length,
    )


def extend_reverse(hit_start: int, hit_end: int, left_flank: int,
                   right_flank: int, sequence_length: int) -> Extension:
    """Left flank grows the high end, right flank grows the low end."""
    wanted_start = hit_start - right_flank
    wanted_end = hit_end + left_flank
    return (
        max(1, wanted_start),
        min(sequence_length, wanted_end),
        wanted_end > sequence_length,
        wanted_start < 1,
    )


def extend(hit: HitRecord, left_flank: int, right_flank: int,
           sequence_length: Optional[int]) -> ExtensionRequest:
    """
    Compute the extended interval for one hit.

    Args:
        hit: Hit in genome coordinates
        left_flank: Bases to add on the hit's 5' side
        right_flank: Bases to add on the hit's 3' side
        sequence_length: Total length of hit.source_id, or None if unknown.
                         With an unknown length the hit interval is returned as is.

    Returns:
        ExtensionRequest clipped to [1, sequence_length]

    Raises:
        ValueError: On negative flanks, a non-positive length, or a hit outside its sequence
    """
    if left_flank < 0 or right_flank < 0:
        raise ValueError(f"Flanks must be >= 0, got left={left_flank}, right={right_flank}")

    if sequence_length is None:
        return ExtensionRequest(
            source_id=hit.source_id,
            ext_start=hit.hit_start,
            ext_end=hit.hit_end,
            orientation=hit.orientation,
            length_known=False,
            hit=hit
        )

    if sequence_length <= 0:
        raise ValueError(f"Invalid sequence length for {hit.source_id}: {sequence_length}")
    if hit.hit_start < 1 or hit.hit_end > sequence_length or hit.hit_start > hit.hit_end:
        raise ValueError(
            f"Invalid hit coordinates: {hit.source_id}:{hit.hit_start}-{hit.hit_end}, "
            f"sequence_length={sequence_length}"
        )

    if hit.orientation.is_reverse:
        ext_start, ext_end, left_terminal, right_terminal = extend_reverse(
            hit.hit_start, hit.hit_end, left_flank, right_flank, sequence_length
        )
    else:
        ext_start, ext_end, left_terminal, right_terminal = extend_forward(
            hit.hit_start, hit.hit_end, left_flank, right_flank, sequence_length
        )

    return ExtensionRequest(
        source_id=hit.source_id,
        ext_start=ext_start,
        ext_end=ext_end,
        orientation=hit.orientation,
        was_left_terminal=left_terminal,
        was_right_terminal=right_terminal,
        hit=hit
    )


class RangeExtender:
    """
    Extend hits against a length oracle and keep edge statistics.

    Attributes:
        left_needed / right_needed (int): Hits whose query carried fewer
            unaligned bases than the requested flank on that side
        left_terminal / right_terminal (int): Requests clipped at a sequence end
        unknown_length (int): Hits left unextended for lack of a length
    """

    def __init__(self, length_oracle, left_flank: int = 100, right_flank: int = 100):
        if left_flank < 0 or right_flank < 0:
            raise ValueError(f"Flanks must be >= 0, got left={left_flank}, right={right_flank}")
        self.length_oracle = length_oracle
        self.left_flank = left_flank
        self.right_flank = right_flank
        self.left_needed = 0
        self.right_needed = 0
        self.left_terminal = 0
        self.right_terminal = 0
        self.unknown_length = 0

    def extend(self, hit: HitRecord) -> ExtensionRequest:
        request = extend(
            hit, self.left_flank, self.right_flank,
            self.length_oracle.length_of(hit.source_id)
        )

        if hit.leading_unaligned < self.left_flank:
            self.left_needed += 1
        if hit.trailing_unaligned < self.right_flank:
            self.right_needed += 1
        if not request.length_known:
            self.unknown_length += 1
        self.left_terminal += request.was_left_terminal
        self.right_terminal += request.was_right_terminal

        logger.debug(
            " Range: %d-%d (%s)", request.ext_start, request.ext_end,
            request.orientation.value
        )
        return request

    def extend_all(self, hits: List[HitRecord]) -> List[ExtensionRequest]:
        return [self.extend(hit) for hit in hits]


def requests_to_dataframe(requests: List[ExtensionRequest]) -> 'pd.DataFrame':
    """
    Convert extension requests to a pandas DataFrame, one row per request.

    Raises:
        ImportError: If pandas is not installed
    """
    if not PANDAS_AVAILABLE:
        raise ImportError("pandas is required for DataFrame conversion. Install with: pip install pandas")

    rows = []
    for request in requests:
        hit = request.hit
        rows.append({
            'source_id': request.source_id,
            'hit_start': hit.hit_start if hit else None,
            'hit_end': hit.hit_end if hit else None,
            'ext_start': request.ext_start,
            'ext_end': request.ext_end,
            'strand': request.orientation.value,
            'left_terminal': request.was_left_terminal,
            'right_terminal': request.was_right_terminal,
            'length_known': request.length_known,
            'query_id': hit.raw_id if hit else None,
        })
    return pd.DataFrame(rows)
