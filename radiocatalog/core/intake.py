"""Segment intake: poll the playlist, classify, fingerprint and catalog.

Pipeline per polling cycle, strictly sequential in segment order:
  1. Fetch and parse the HLS playlist
  2. Keep new segments (change detection) worth downloading (classification)
  3. For each: download, query the oracle, consolidate the candidates
  4. Record a match for known audio, or register and catalog new audio

Only playlist fetch failures are fatal. Any other failure abandons the
segment concerned and the cycle continues.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

import httpx
import m3u8

from radiocatalog.core.classifier import Classification, SegmentClassifier
from radiocatalog.core.config import RadioCatalogConfig
from radiocatalog.core.database import Catalog
from radiocatalog.core.errors import CatalogError, FetchError, ParseError
from radiocatalog.core.models import ContentKind, Segment
from radiocatalog.core.protocols import FingerprintOracle, SegmentFilter
from soundmatch.client import OracleError
from soundmatch.matcher import FingerprintResult, MatchConsolidator


class IntakeOutcome(Enum):
    """Result of processing one downloaded segment."""

    INSERTED = "inserted"  # New track registered and catalogued
    MATCHED = "matched"  # Known track, match history appended
    FAILED = "failed"  # Abandoned (download, oracle or storage failure)


@dataclass(frozen=True, slots=True)
class PlaylistSnapshot:
    """Segments of one playlist refresh."""

    segments: list[Segment]
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class SegmentDownload:
    """A segment selected for download, with its classification."""

    segment: Segment
    url: str
    classification: Classification

    @property
    def kind(self) -> ContentKind:
        return self.classification.kind

    @property
    def artist(self) -> str:
        return self.classification.artist

    @property
    def title(self) -> str:
        return self.classification.title

    def filename(self, now: datetime | None = None) -> str:
        """File name hint sent to the oracle.

        Format: <UTC timestamp>_<kind>_<artist>_<title>.<segment file name>
        """
        if now is None:
            now = datetime.now(timezone.utc)
        last = httpx.URL(self.url).path.rsplit("/", 1)[-1] or "unknown"
        return f"{now:%Y-%m-%d_%H-%M-%S}_{self.kind}_{self.artist}_{self.title}.{last}"


class IntakeOrchestrator:
    """Run the intake pipeline against one live stream."""

    def __init__(
        self,
        stream_url: str,
        config: RadioCatalogConfig,
        catalog: Catalog,
        oracle: FingerprintOracle,
        segment_filter: SegmentFilter,
        http_client: httpx.Client,
        classifier: SegmentClassifier | None = None,
        consolidator: MatchConsolidator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize orchestrator.

        Args:
            stream_url: URL of the HLS media playlist
            config: Application configuration
            catalog: Connected catalog
            oracle: Fingerprint oracle
            segment_filter: Change-detection policy
            http_client: HTTP client for playlist and segment downloads
            classifier: Segment classifier (default grammar if None)
            consolidator: Match consolidator (thresholds from config if None)
            sleep: Pause function between cycles
        """
        self.stream_url = stream_url
        self.config = config
        self.catalog = catalog
        self.oracle = oracle
        self.segment_filter = segment_filter
        self.http = http_client
        self.classifier = classifier or SegmentClassifier()
        self.consolidator = consolidator or MatchConsolidator(
            single_threshold=config.matching.single_threshold,
            pair_min=config.matching.pair_min,
            pair_max=config.matching.pair_max,
        )
        self.sleep = sleep
        self.outcomes: Counter[IntakeOutcome] = Counter()

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    def run(self, max_cycles: int | None = None) -> None:
        """Poll the playlist until a fatal fetch error (or max_cycles).

        Raises:
            FetchError: If the playlist cannot be fetched
        """
        logging.debug(f"[Intake] Fetching {self.stream_url}")
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            pause = self.run_cycle()
            cycles += 1
            logging.debug(f"[Intake] Next poll in {pause:.1f}s")
            self.sleep(pause)

    def run_cycle(self) -> float:
        """Poll once and process every selected segment.

        Returns:
            Seconds to wait before the next poll: half the playlist duration,
            or the idle pause when there was nothing to parse

        Raises:
            FetchError: If the playlist cannot be fetched
        """
        snapshot = self.poll_playlist()
        if snapshot is None or not snapshot.segments:
            return self.config.stream.idle_pause_seconds

        before = self.outcomes.copy()
        for download in self.select_downloads(snapshot.segments):
            self.outcomes[self.process_download(download)] += 1

        cycle = self.outcomes - before
        if cycle:
            logging.info(
                f"[Intake] Cycle done: {cycle[IntakeOutcome.INSERTED]} inserted, "
                f"{cycle[IntakeOutcome.MATCHED]} matched, {cycle[IntakeOutcome.FAILED]} failed"
            )

        return snapshot.duration_seconds / 2 or self.config.stream.idle_pause_seconds

    def poll_playlist(self) -> PlaylistSnapshot | None:
        """Fetch and parse the media playlist.

        Returns:
            Snapshot, or None when the response is not an HLS playlist

        Raises:
            FetchError: On transport failure, a non-200 response or an
                unparseable playlist
        """
        try:
            response = self.http.get(self.stream_url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to get playlist {self.stream_url}: {e}") from e

        if response.status_code != httpx.codes.OK:
            msg = f"Failed to get playlist {response.text}"
            logging.error(f"[Intake] {msg}")
            raise FetchError(msg)

        logging.debug("[Intake] Received stream playlist.")
        content_type = response.headers.get("content-type", "")
        if not self._same_media_type(content_type, self.config.stream.playlist_content_type):
            logging.debug(f"[Intake] Ignoring playlist with content type {content_type!r}")
            return None

        try:
            playlist = m3u8.loads(response.text)
            first_number = playlist.media_sequence or 0
            segments = [
                Segment(
                    number=first_number + index,
                    uri=self._resolve(segment.uri),
                    raw_metadata=segment.title or None,
                    duration_seconds=float(segment.duration or 0.0),
                )
                for index, segment in enumerate(playlist.segments)
            ]
        except ValueError as e:
            raise FetchError(f"Invalid playlist: {e}") from e
        return PlaylistSnapshot(
            segments=segments,
            duration_seconds=sum(s.duration_seconds for s in segments),
        )

    # ------------------------------------------------------------------
    # Segment selection
    # ------------------------------------------------------------------

    def select_downloads(self, segments: list[Segment]) -> list[SegmentDownload]:
        """Pick new segments whose content is worth fingerprinting.

        Args:
            segments: Segments of one playlist refresh, in playlist order

        Returns:
            Downloads in segment order
        """
        downloads: list[SegmentDownload] = []
        for segment in segments:
            if not self.segment_filter.need_download(segment):
                continue

            url = self._absolute_url(segment.uri)
            if url is None:
                logging.error(f"[Intake] Segment#{segment.number} invalid url {segment.uri}")
                continue

            try:
                classification = self.classifier.classify(segment)
            except ParseError as e:
                # Happens on the first refresh and around section changes
                logging.info(f"[Intake] Segment#{segment.number} SKIPPED: no info: {e}")
                logging.debug(f"[Intake] Segment#{segment.number} title={segment.raw_metadata!r}")
                continue

            if not classification.kind.worth_downloading:
                logging.info(
                    f"[Intake] Segment#{segment.number} SKIPPED: unknown kind, "
                    f"artist={classification.artist}, title={classification.title}"
                )
                continue

            logging.info(
                f"[Intake] Segment#{segment.number} DOWNLOAD: likely {classification.kind}, "
                f"artist: {classification.artist}, title: {classification.title}"
            )
            downloads.append(SegmentDownload(segment, url, classification))

        return downloads

    # ------------------------------------------------------------------
    # Segment processing
    # ------------------------------------------------------------------

    def process_download(self, download: SegmentDownload) -> IntakeOutcome:
        """Download a segment and catalog it as a match or a new track."""
        try:
            data, content_type = self.download(download)
        except FetchError as e:
            logging.error(f"[Intake] {e}")
            return IntakeOutcome.FAILED

        filename = download.filename()
        try:
            results = self.oracle.query(data, filename, self.config.oracle.min_confidence)
        except OracleError as e:
            logging.error(f"[Intake] Oracle query failed for {download.url}: {e}")
            return IntakeOutcome.FAILED

        for result in results:
            logging.info(
                f"[Intake] {download.url} '{download.title}'/'{download.artist}' matches "
                f"'{result.title}'/'{result.artist}' {result.score()}%"
            )

        matches = self.consolidator.consolidate(results)
        if matches:
            self._record_matches(matches)
            return IntakeOutcome.MATCHED

        return self._insert_new(download, data, content_type, filename)

    def download(self, download: SegmentDownload) -> tuple[bytes, str]:
        """Fetch segment audio.

        Returns:
            (audio bytes, content type)

        Raises:
            FetchError: On transport failure, non-2xx response or empty body
        """
        try:
            response = self.http.get(download.url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to download {download.url}: {e}") from e

        data = response.content
        if not data:
            raise FetchError(f"Failed to download {download.url}: empty body")

        logging.debug(f"[Intake] Downloaded {download.url}, {len(data)} bytes")
        content_type = response.headers.get("content-type") or self.config.stream.default_content_type
        return data, content_type

    def _record_matches(self, matches: list[FingerprintResult]) -> None:
        for match in matches:
            try:
                self.catalog.insert_match(match.track_id, match.score())
                logging.info(f"[Intake] Recorded match for {match.track_id} ({match.score()}%)")
            except CatalogError as e:
                logging.error(f"[Intake] Failed to record match for {match.track_id}: {e}")

    def _insert_new(
        self, download: SegmentDownload, data: bytes, content_type: str, filename: str
    ) -> IntakeOutcome:
        track_id = uuid4()
        try:
            self.catalog.insert_track(
                track_id, download.kind, content_type, download.artist, download.title, data
            )
        except CatalogError as e:
            logging.error(f"[Intake] Failed to catalog track {track_id}: {e}")
            return IntakeOutcome.FAILED

        try:
            self.oracle.insert(data, filename, track_id, download.artist, download.title)
        except OracleError as e:
            logging.error(
                f"[Intake] Failed to insert track '{download.artist}'/'{download.title}': {e}"
            )
            self._discard(track_id)
            return IntakeOutcome.FAILED

        logging.info(f"[Intake] Inserted new track '{download.artist}'/'{download.title}': {track_id}")
        return IntakeOutcome.INSERTED

    def _discard(self, track_id: UUID) -> None:
        """Remove a catalogued track the oracle does not know about."""
        try:
            self.catalog.delete_track(track_id)
        except CatalogError as e:
            logging.error(f"[Intake] Failed to remove track {track_id} after oracle insert failure: {e}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, uri: str) -> str:
        """Resolve a segment URI against the playlist URL."""
        try:
            return str(httpx.URL(self.stream_url).join(uri))
        except (httpx.InvalidURL, TypeError):
            return uri

    @staticmethod
    def _absolute_url(uri: str) -> str | None:
        try:
            url = httpx.URL(uri)
        except (httpx.InvalidURL, TypeError):
            return None
        if not url.is_absolute_url or url.scheme not in ("http", "https"):
            return None
        return str(url)

    @staticmethod
    def _same_media_type(actual: str, expected: str) -> bool:
        """Compare content types ignoring case and whitespace."""

        def normalize(value: str) -> str:
            return "".join(value.split()).lower()

        return normalize(actual) == normalize(expected)
