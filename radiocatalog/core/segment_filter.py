"""Change detection over the live segment stream.

Two policies are available, selected once at startup:
  - "number": sequence-number watermark (strictly monotonic)
  - "uri": bounded recency set keyed by segment URI
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from radiocatalog.core.config import FilterConfig
    from radiocatalog.core.models import Segment
    from radiocatalog.core.protocols import SegmentFilter


class SegmentNumberFilter:
    """Accept a segment only when its number is above the watermark.

    A segment numbered at or below the highest number already seen is
    skipped, even when its content differs (playlists may renumber on
    section changes).
    """

    def __init__(self) -> None:
        self.last_seen_number = 0

    def need_download(self, segment: Segment) -> bool:
        if segment.number <= self.last_seen_number:
            return False
        self.last_seen_number = segment.number
        return True


class RecentUriFilter:
    """Accept a segment only when its URI is not among the most recent ones.

    Every call marks the URI as most recently used, evicting the least
    recently used entry once the capacity is exceeded.
    """

    DEFAULT_CAPACITY = 10

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize filter.

        Args:
            capacity: Number of URIs remembered

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._recent: OrderedDict[str, None] = OrderedDict()

    def need_download(self, segment: Segment) -> bool:
        seen = segment.uri in self._recent
        self._recent[segment.uri] = None
        self._recent.move_to_end(segment.uri)
        while len(self._recent) > self.capacity:
            self._recent.popitem(last=False)
        return not seen

    def __len__(self) -> int:
        return len(self._recent)


def create_segment_filter(config: FilterConfig) -> SegmentFilter:
    """Build the change-detection policy named in the configuration.

    Args:
        config: Filter configuration

    Returns:
        SegmentNumberFilter or RecentUriFilter
    """
    if config.policy == "uri":
        logging.info(f"[SegmentFilter] Using URI recency filter (capacity {config.recent_capacity})")
        return RecentUriFilter(config.recent_capacity)
    logging.info("[SegmentFilter] Using sequence number filter")
    return SegmentNumberFilter()
