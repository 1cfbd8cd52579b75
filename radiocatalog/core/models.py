"""Data model for segments, catalogued tracks and match history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class ContentKind(Enum):
    """Suggested content of a stream segment.

    The value is the string persisted in the catalog.
    """

    UNKNOWN = "unknown"
    TALK = "talk"
    ADVERTISEMENT = "advertisement"
    MUSIC = "music"

    @property
    def worth_downloading(self) -> bool:
        """Whether segments of this kind are fetched and fingerprinted."""
        return self is not ContentKind.UNKNOWN

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Segment:
    """One media segment of the live playlist.

    Attributes:
        number: Media sequence number (playlist media sequence + index)
        uri: Absolute segment URI
        raw_metadata: Title text of the segment's #EXTINF tag, if any
        duration_seconds: Advertised segment duration
    """

    number: int
    uri: str
    raw_metadata: str | None
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class Track:
    """A catalogued track with its audio."""

    id: UUID
    added_at: datetime
    kind: ContentKind
    artist: str
    title: str
    content_type: str
    data: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class MatchRecord:
    """One repeat sighting of a catalogued track."""

    track_id: UUID
    matched_at: datetime
    score: int


@dataclass(frozen=True, slots=True)
class CatalogStats:
    """Aggregate catalog figures."""

    total_tracks: int
    tracks_by_kind: dict[ContentKind, int]
    total_matches: int
    total_audio_bytes: int
