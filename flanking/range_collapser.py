"""
Range Collapser

Merges extension requests that overlap, or lie within ``gap_tolerance`` bases
of each other, on the same source sequence. Each merged range becomes one
physical extraction; the collapse result remembers which requests were folded
into which range so every hit stays traceable.

Usage:
    result = RangeCollapser(gap_tolerance=10).collapse(requests)
    for merged in result.merged_ranges():
        print(merged.source_id, merged.start, merged.end, result.members(merged))
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence, Tuple

from .utils.parsers import Orientation
from .range_extender import ExtensionRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergedRange:
    """A collapsed extraction unit (1-based, fully closed)"""
    source_id: str
    start: int
    end: int
    representative_orientation: Orientation
    member_count: int = 1

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.source_id, self.start, self.end)

    @property
    def store_interval(self) -> Tuple[int, int]:
        """The same range as 0-based, half-open (start, end)."""
        return (self.start - 1, self.end)

    def contains(self, request: ExtensionRequest) -> bool:
        return (request.source_id == self.source_id
                and self.start <= request.start
                and request.end <= self.end)


@dataclass
class CollapseResult:
    """Merged ranges per source id plus the request -> range assignment."""
    ranges: Dict[str, List[MergedRange]] = field(default_factory=dict)
    membership: List[MergedRange] = field(default_factory=list)  # index-aligned with the input

    @property
    def total_regions(self) -> int:
        return sum(len(merged) for merged in self.ranges.values())

    def merged_ranges(self) -> Iterator[MergedRange]:
        """Every merged range, source ids in first-seen order, ranges by start."""
        for merged in self.ranges.values():
            yield from merged

    def members(self, merged: MergedRange) -> List[int]:
        """Indices of the input requests folded into ``merged``."""
        return [index for index, target in enumerate(self.membership) if target == merged]

    def range_for(self, index: int) -> MergedRange:
        return self.membership[index]


def representative_orientation(members: Sequence[ExtensionRequest]) -> Orientation:
    """
    Orientation of the longest member; ties go to the first one in sort order.

    Members must be given in sweep (start, end, input) order.
    """
    best = members[0]
    for request in members[1:]:
        if request.length > best.length:
            best = request
    return best.orientation


class RangeCollapser:
    """Sort-and-sweep merge of extension requests per source sequence."""

    def __init__(self, gap_tolerance: int = 0):
        if gap_tolerance < 0:
            raise ValueError(f"gap_tolerance must be >= 0, got {gap_tolerance}")
        self.gap_tolerance = gap_tolerance

    def collapse(self, requests: Sequence[ExtensionRequest]) -> CollapseResult:
        groups: Dict[str, List[int]] = defaultdict(list)
        for index, request in enumerate(requests):
            groups[request.source_id].append(index)

        result = CollapseResult(membership=[None] * len(requests))

        for source_id, indices in groups.items():
            ordered = sorted(
                indices,
                key=lambda i: (requests[i].start, requests[i].end, i)
            )

            merged_ranges = []
            current = [ordered[0]]
            cur_start = requests[ordered[0]].start
            cur_end = requests[ordered[0]].end

            for index in ordered[1:]:
                request = requests[index]
                if request.start <= cur_end + self.gap_tolerance:
                    cur_end = max(cur_end, request.end)
                    current.append(index)
                else:
                    merged_ranges.append(
                        self._close(source_id, cur_start, cur_end, current, requests, result)
                    )
                    current = [index]
                    cur_start = request.start
                    cur_end = request.end

            merged_ranges.append(
                self._close(source_id, cur_start, cur_end, current, requests, result)
            )
            result.ranges[source_id] = merged_ranges

        logger.info(
            "Collapsed %d requests into %d regions on %d sequences",
            len(requests), result.total_regions, len(result.ranges)
        )
        return result

    @staticmethod
    def _close(source_id: str, start: int, end: int, member_indices: List[int],
               requests: Sequence[ExtensionRequest], result: CollapseResult) -> MergedRange:
        members = [requests[i] for i in member_indices]
        merged = MergedRange(
            source_id=source_id,
            start=start,
            end=end,
            representative_orientation=representative_orientation(members),
            member_count=len(members)
        )
        orientations = {member.orientation for member in members}
        if len(orientations) > 1:
            logger.debug(
                "Mixed orientations merged into %s:%d-%d, using %s",
                source_id, start, end, merged.representative_orientation.value
            )
        for index in member_indices:
            result.membership[index] = merged
        return merged
