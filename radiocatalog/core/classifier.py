"""Segment metadata parsing and content-kind classification.

Each segment of the station's playlist carries a metadata line in its
#EXTINF title, for example:

    offset=0,title="Song",artist="Band",url="song_spot=\\"M\\" MediaBaseId=\\"123\\" ...

The line is decoded into a SegmentInfo and classified with ordered rules:
  1. Music
  2. Talk
  3. Advertisement
  4. Unknown (anything else)

Lines that do not follow the grammar are rejected as a whole, except
advertisement breaks announced with an `adContext=` marker.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import urlparse
from uuid import UUID

from radiocatalog.core.errors import ParseError
from radiocatalog.core.models import ContentKind, Segment

SEGMENT_INFO_PATTERN = re.compile(
    r'(?:offset=\d+,)?title="(?P<title>.+?)",artist="(?P<artist>.+?)",'
    r'url="song_spot=\\"(?P<song_spot>\w)\\" '
    r'MediaBaseId=\\"(?P<media_base_id>-?\d+)\\" '
    r'itunesTrackId=\\"(?P<itunes_track_id>-?\d+)\\" '
    r'amgTrackId=\\"(?P<amg_track_id>-?\d+)\\" '
    r'amgArtistId=\\"(?P<amg_artist_id>-?\d+)\\" '
    r'TAID=\\"(?P<ta_id>-?\d+)\\" '
    r'TPID=\\"(?P<tp_id>-?\d+)\\" '
    r'cartcutId=\\"(?P<cartcut_id>-?\d+)\\" '
    r'amgArtworkURL=\\"(?P<amg_artwork_url>.*?)\\" '
    r'length=\\"(?P<length>\d\d:\d\d:\d\d)\\" '
    r'unsID=\\"(?P<uns_id>-?\d+)\\" '
    r'spotInstanceId=\\"(?P<spot_instance_id>.*?)\\""'
)
"""Grammar of the station's per-segment metadata line."""

AD_CONTEXT_MARKER = "adContext="
"""Marker of advertisement breaks whose metadata follows no grammar."""

ADVERTISEMENT_LABEL = "Advertisement"

_INTEGER_FIELDS = (
    "media_base_id",
    "itunes_track_id",
    "amg_track_id",
    "amg_artist_id",
    "ta_id",
    "tp_id",
    "cartcut_id",
    "uns_id",
)


@dataclass(frozen=True, slots=True)
class SegmentInfo:
    """Decoded station metadata of one segment."""

    title: str
    artist: str
    song_spot: str
    media_base_id: int
    itunes_track_id: int
    amg_track_id: int
    amg_artist_id: int
    ta_id: int
    tp_id: int
    cartcut_id: int
    amg_artwork_url: str | None
    length: timedelta
    uns_id: int
    spot_instance_id: UUID | None

    @property
    def is_music(self) -> bool:
        """Song or filler with a duration and at least one catalogue reference."""
        return (
            self.song_spot in ("M", "F")
            and self.length > timedelta(0)
            and (
                self.media_base_id > 0
                or self.itunes_track_id > 0
                or (self.amg_artist_id > 0 and self.amg_track_id > 0)
                or self.amg_artwork_url is not None
            )
        )

    @property
    def is_talk(self) -> bool:
        # song_spot=T with every reference zeroed and no length
        return (
            self.song_spot == "T"
            and self.media_base_id == 0
            and self.itunes_track_id == 0
            and self.amg_artist_id == 0
            and self.amg_track_id == 0
            and self.ta_id == 0
            and self.tp_id == 0
            and self.amg_artwork_url is None
            and self.spot_instance_id is None
            and self.length == timedelta(0)
        )

    @property
    def is_advertisement(self) -> bool:
        # Spots are filler (F) with amgTrackId=-1 and a spot instance id
        return (
            self.song_spot == "F"
            and self.media_base_id == 0
            and self.itunes_track_id == 0
            and self.amg_artist_id == 0
            and self.amg_track_id == -1
            and self.ta_id == 0
            and self.tp_id == 0
            and self.cartcut_id == 0
            and self.amg_artwork_url is None
            and self.spot_instance_id is not None
        )

    def content_kind(self) -> ContentKind:
        """Apply the classification rules in order; first match wins."""
        if self.is_music:
            return ContentKind.MUSIC
        if self.is_talk:
            return ContentKind.TALK
        if self.is_advertisement:
            return ContentKind.ADVERTISEMENT
        return ContentKind.UNKNOWN


@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of classifying a segment.

    Attributes:
        kind: Suggested content kind
        artist: Artist label used for the oracle and the catalog
        title: Title label used for the oracle and the catalog
        info: Decoded metadata (None for marker-detected advertisements)
    """

    kind: ContentKind
    artist: str
    title: str
    info: SegmentInfo | None = None


class SegmentClassifier:
    """Parse segment metadata and suggest a content kind."""

    def __init__(self, pattern: re.Pattern[str] = SEGMENT_INFO_PATTERN) -> None:
        """Initialize classifier.

        Args:
            pattern: Compiled metadata grammar with named groups matching
                the SegmentInfo fields
        """
        self.pattern = pattern

    def parse(self, text: str) -> SegmentInfo:
        """Decode a metadata line.

        Args:
            text: Raw #EXTINF title text

        Returns:
            SegmentInfo with all fields

        Raises:
            ParseError: If any field is missing or malformed
        """
        match = self.pattern.search(text)
        if match is None:
            raise ParseError("Metadata does not match the segment grammar")

        fields = match.groupdict()
        try:
            integers = {name: int(fields[name]) for name in _INTEGER_FIELDS}
            length = self._parse_length(fields["length"])
        except (KeyError, ValueError) as e:
            raise ParseError(f"Malformed metadata field: {e}") from e

        song_spot = fields.get("song_spot") or ""
        if len(song_spot) != 1:
            raise ParseError(f"Invalid song_spot: {song_spot!r}")

        return SegmentInfo(
            title=fields["title"],
            artist=fields["artist"],
            song_spot=song_spot,
            amg_artwork_url=self._parse_url(fields["amg_artwork_url"]),
            length=length,
            spot_instance_id=self._parse_uuid(fields["spot_instance_id"]),
            **integers,
        )

    def classify(self, segment: Segment) -> Classification:
        """Classify a segment from its embedded metadata.

        Args:
            segment: Playlist segment

        Returns:
            Classification with kind and labels

        Raises:
            ParseError: If the metadata is absent or unparseable and does not
                announce an advertisement break
        """
        text = segment.raw_metadata
        if not text:
            raise ParseError(f"Segment#{segment.number} has no metadata")

        try:
            info = self.parse(text)
        except ParseError:
            if AD_CONTEXT_MARKER in text:
                logging.debug(f"[Classifier] Segment#{segment.number} carries an ad context marker")
                return Classification(
                    kind=ContentKind.ADVERTISEMENT,
                    artist=ADVERTISEMENT_LABEL,
                    title=ADVERTISEMENT_LABEL,
                )
            raise

        return Classification(
            kind=info.content_kind(),
            artist=info.artist,
            title=info.title,
            info=info,
        )

    @staticmethod
    def _parse_length(value: str) -> timedelta:
        """Convert HH:MM:SS into a duration."""
        parsed = datetime.strptime(value, "%H:%M:%S")
        return timedelta(hours=parsed.hour, minutes=parsed.minute, seconds=parsed.second)

    @staticmethod
    def _parse_url(value: str) -> str | None:
        """Return the artwork URL if it is an absolute URL, else None."""
        try:
            parsed = urlparse(value)
        except ValueError:
            return None
        if parsed.scheme and parsed.netloc:
            return value
        return None

    @staticmethod
    def _parse_uuid(value: str) -> UUID | None:
        try:
            return UUID(value)
        except ValueError:
            return None
