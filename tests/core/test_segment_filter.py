"""Tests for segment change detection."""

from collections.abc import Callable

import pytest

from radiocatalog.core.config import FilterConfig
from radiocatalog.core.models import Segment
from radiocatalog.core.segment_filter import (
    RecentUriFilter,
    SegmentNumberFilter,
    create_segment_filter,
)

SegmentFactory = Callable[..., Segment]


class TestSegmentNumberFilter:
    """Test the sequence number watermark."""

    def test_increasing_numbers_accepted_once(self, make_segment: SegmentFactory) -> None:
        """Test each strictly increasing number is accepted exactly once."""
        seg_filter = SegmentNumberFilter()
        numbers = [1, 2, 2, 3, 5, 5, 6]

        accepted = [n for n in numbers if seg_filter.need_download(make_segment(n))]

        assert accepted == [1, 2, 3, 5, 6]
        assert seg_filter.last_seen_number == 6

    def test_decrease_rejected(self, make_segment: SegmentFactory) -> None:
        """Test a renumbered (lower) segment is skipped."""
        seg_filter = SegmentNumberFilter()
        assert seg_filter.need_download(make_segment(10))

        assert not seg_filter.need_download(make_segment(4, uri="https://radio.example.com/new.aac"))
        assert seg_filter.last_seen_number == 10

    def test_zero_never_accepted(self, make_segment: SegmentFactory) -> None:
        """Test the watermark starts at zero."""
        seg_filter = SegmentNumberFilter()
        assert not seg_filter.need_download(make_segment(0))
        assert seg_filter.need_download(make_segment(1))

    def test_overlapping_refreshes(self, make_segment: SegmentFactory) -> None:
        """Test a sliding playlist window only yields new segments."""
        seg_filter = SegmentNumberFilter()
        first = [make_segment(n) for n in (100, 101, 102)]
        second = [make_segment(n) for n in (101, 102, 103)]

        assert [s.number for s in first if seg_filter.need_download(s)] == [100, 101, 102]
        assert [s.number for s in second if seg_filter.need_download(s)] == [103]


class TestRecentUriFilter:
    """Test the bounded URI recency set."""

    def test_repeat_uri_rejected(self, make_segment: SegmentFactory) -> None:
        """Test a URI seen recently is skipped."""
        seg_filter = RecentUriFilter()
        segment = make_segment(1)

        assert seg_filter.need_download(segment)
        assert not seg_filter.need_download(segment)

    def test_number_is_ignored(self, make_segment: SegmentFactory) -> None:
        """Test decisions depend on the URI only."""
        seg_filter = RecentUriFilter()
        uri = "https://radio.example.com/live/a.aac"

        assert seg_filter.need_download(make_segment(5, uri=uri))
        assert not seg_filter.need_download(make_segment(9, uri=uri))
        assert seg_filter.need_download(make_segment(1, uri="https://radio.example.com/live/b.aac"))

    def test_least_recent_evicted(self, make_segment: SegmentFactory) -> None:
        """Test capacity bounds the remembered URIs."""
        seg_filter = RecentUriFilter(capacity=2)
        a, b, c = (make_segment(n) for n in (1, 2, 3))

        seg_filter.need_download(a)
        seg_filter.need_download(b)
        seg_filter.need_download(c)

        assert len(seg_filter) == 2
        assert seg_filter.need_download(a)

    def test_repeat_refreshes_recency(self, make_segment: SegmentFactory) -> None:
        """Test a repeated URI becomes the most recent entry."""
        seg_filter = RecentUriFilter(capacity=2)
        a, b, c = (make_segment(n) for n in (1, 2, 3))

        seg_filter.need_download(a)
        seg_filter.need_download(b)
        assert not seg_filter.need_download(a)
        seg_filter.need_download(c)

        assert not seg_filter.need_download(a)
        assert seg_filter.need_download(b)

    def test_capacity_validation(self) -> None:
        """Test capacity must be positive."""
        with pytest.raises(ValueError):
            RecentUriFilter(capacity=0)


class TestCreateSegmentFilter:
    """Test policy selection."""

    def test_number_policy(self) -> None:
        """Test the default policy."""
        assert isinstance(create_segment_filter(FilterConfig()), SegmentNumberFilter)

    def test_uri_policy(self) -> None:
        """Test the URI policy with its capacity."""
        seg_filter = create_segment_filter(FilterConfig(policy="uri", recent_capacity=3))

        assert isinstance(seg_filter, RecentUriFilter)
        assert seg_filter.capacity == 3
