"""SQLite catalog of tracks, their audio and their match history."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import UUID

from radiocatalog.core.errors import (
    CatalogError,
    CatalogIntegrityError,
    EmptyAudioError,
    TrackNotFoundError,
)
from radiocatalog.core.models import CatalogStats, ContentKind, MatchRecord, Track
from radiocatalog.core.repositories import (
    AudioRepository,
    MatchRepository,
    TrackRepository,
    from_db_timestamp,
)


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    """Row factory that returns dicts instead of sqlite3.Row."""
    return {col[0]: row[i] for i, col in enumerate(cursor.description)}


class Catalog:
    """Durable store of catalogued tracks.

    The catalog owns its SQLite connection; the operations below are the
    only way to read or change the stored data:
        - insert_track: metadata row + audio blob, atomically
        - insert_match: append a repeat sighting
        - get_track / get_matches: read paths
        - delete_track: catalog maintenance (cascades to audio and matches)

    Track id is the join key across tracks, track_audio and track_matches.
    A single writer is assumed.
    """

    def __init__(self, db_path: Path):
        """Initialize catalog.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._tracks: TrackRepository | None = None
        self._audio: AudioRepository | None = None
        self._matches: MatchRepository | None = None

    def connect(self) -> None:
        """Connect to database, enable foreign keys and create the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Autocommit mode: transactions are opened explicitly by transaction()
        try:
            self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            self._conn.row_factory = _dict_factory
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise CatalogError(f"Cannot open catalog {self.db_path}: {e}") from e
        self._tracks = TrackRepository(self._conn)
        self._audio = AudioRepository(self._conn)
        self._matches = MatchRepository(self._conn)
        self.initialize_schema()
        logging.info(f"[Catalog] Opened {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._tracks = self._audio = self._matches = None

    def __enter__(self) -> Catalog:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ========== Transaction Management ==========

    @property
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise CatalogError("Catalog not connected")
        return self._conn

    @property
    def _track_repo(self) -> TrackRepository:
        if self._tracks is None:
            raise CatalogError("Catalog not connected")
        return self._tracks

    @property
    def _audio_repo(self) -> AudioRepository:
        if self._audio is None:
            raise CatalogError("Catalog not connected")
        return self._audio

    @property
    def _match_repo(self) -> MatchRepository:
        if self._matches is None:
            raise CatalogError("Catalog not connected")
        return self._matches

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run the enclosed statements atomically.

        Commits on success, rolls back on any exception. SQLite errors are
        translated into CatalogError subclasses.

        Raises:
            CatalogIntegrityError: If a constraint rejected a statement
            CatalogError: On any other storage failure
        """
        conn = self._connection
        try:
            conn.execute("BEGIN")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise CatalogIntegrityError(str(e)) from e
        except sqlite3.Error as e:
            conn.rollback()
            raise CatalogError(str(e)) from e
        except BaseException:
            conn.rollback()
            raise

    # ========== Schema Management ==========

    def initialize_schema(self) -> None:
        """Create database schema."""
        self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS tracks (
                id TEXT PRIMARY KEY,
                added_at TEXT NOT NULL,
                kind TEXT NOT NULL
                    CHECK (kind IN ('unknown', 'talk', 'advertisement', 'music')),
                artist TEXT NOT NULL,
                title TEXT NOT NULL
            ) WITHOUT ROWID;

            CREATE TABLE IF NOT EXISTS track_audio (
                id TEXT PRIMARY KEY,
                content_type TEXT NOT NULL,
                bytes BLOB NOT NULL,
                FOREIGN KEY (id) REFERENCES tracks(id)
                    ON DELETE CASCADE
                    ON UPDATE CASCADE
            );

            CREATE TABLE IF NOT EXISTS track_matches (
                id TEXT NOT NULL,
                matched_at TEXT NOT NULL,
                score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 100),
                FOREIGN KEY (id) REFERENCES tracks(id)
                    ON DELETE CASCADE
                    ON UPDATE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_track_matches_id
            ON track_matches(id, matched_at);
        """
        )

    # ========== Catalog Operations ==========

    def insert_track(
        self,
        track_id: UUID,
        kind: ContentKind,
        content_type: str,
        artist: str,
        title: str,
        data: bytes,
        added_at: datetime | None = None,
    ) -> None:
        """Store a new track with its audio.

        The metadata row and the audio blob are written in one transaction:
        both are stored or neither is.

        Args:
            track_id: Track ID (shared with the fingerprint oracle)
            kind: Content kind
            content_type: MIME type of the audio
            artist: Artist label
            title: Title label
            data: Audio bytes
            added_at: First-seen time (defaults to now)

        Raises:
            EmptyAudioError: If data is empty
            CatalogIntegrityError: If the id is already catalogued
            CatalogError: On storage failure
        """
        if not data:
            raise EmptyAudioError(f"Track {track_id} has no audio")
        if added_at is None:
            added_at = datetime.now(timezone.utc)

        with self.transaction():
            self._track_repo.add(track_id, added_at, kind, artist, title)
            self._audio_repo.add(track_id, content_type, data)

        logging.debug(f"[Catalog] Stored track {track_id} ({len(data)} bytes)")

    def insert_match(self, track_id: UUID, score: int, matched_at: datetime | None = None) -> None:
        """Append a match record for a catalogued track.

        Existence of the track is enforced by the foreign key, not checked here.

        Args:
            track_id: Matched track ID
            score: Match score (0-100)
            matched_at: Time of the sighting (defaults to now)

        Raises:
            CatalogIntegrityError: If the track is unknown or the score is out of range
            CatalogError: On storage failure
        """
        if matched_at is None:
            matched_at = datetime.now(timezone.utc)

        with self.transaction():
            self._match_repo.add(track_id, matched_at, score)

    def get_track(self, track_id: UUID) -> Track:
        """Get a track with its audio.

        Args:
            track_id: Track ID

        Returns:
            Track

        Raises:
            TrackNotFoundError: If no such track exists
            CatalogError: On storage failure
        """
        try:
            row = self._track_repo.get(track_id)
        except sqlite3.Error as e:
            raise CatalogError(str(e)) from e

        if row is None:
            raise TrackNotFoundError(f"Track {track_id} not found")

        return Track(
            id=UUID(row["id"]),
            added_at=from_db_timestamp(row["added_at"]),
            kind=ContentKind(row["kind"]),
            artist=row["artist"],
            title=row["title"],
            content_type=row["content_type"],
            data=bytes(row["bytes"]),
        )

    def get_matches(self, track_id: UUID) -> list[MatchRecord]:
        """Get match history of a track, newest first.

        Args:
            track_id: Track ID

        Returns:
            List of match records (empty if none)

        Raises:
            CatalogError: On storage failure
        """
        try:
            return self._match_repo.get_for_track(track_id)
        except sqlite3.Error as e:
            raise CatalogError(str(e)) from e

    def delete_track(self, track_id: UUID) -> bool:
        """Delete a track, its audio and its match history.

        Args:
            track_id: Track ID

        Returns:
            True if deleted, False if track not found
        """
        with self.transaction():
            return self._track_repo.delete(track_id)

    def get_stats(self) -> CatalogStats:
        """Get catalog statistics."""
        try:
            by_kind = self._track_repo.count_by_kind()
            return CatalogStats(
                total_tracks=sum(by_kind.values()),
                tracks_by_kind=by_kind,
                total_matches=self._match_repo.count(),
                total_audio_bytes=self._audio_repo.total_bytes(),
            )
        except sqlite3.Error as e:
            raise CatalogError(str(e)) from e
