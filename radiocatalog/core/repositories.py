"""Repository classes for catalog tables.

Repositories never commit: the Catalog wraps every public operation in a
transaction.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from radiocatalog.core.models import ContentKind, MatchRecord


def to_db_timestamp(value: datetime) -> str:
    """Serialize a timestamp as sortable ISO-8601 UTC text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str) -> datetime:
    """Parse a timestamp written by to_db_timestamp()."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class BaseRepository:
    """Base class for repositories."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize repository with the catalog connection.

        Args:
            conn: Open SQLite connection owned by the Catalog
        """
        self._conn = conn


class TrackRepository(BaseRepository):
    """Repository for track metadata rows."""

    def add(
        self,
        track_id: UUID,
        added_at: datetime,
        kind: ContentKind,
        artist: str,
        title: str,
    ) -> None:
        """Insert a metadata row.

        Args:
            track_id: Track ID
            added_at: Time the track was first seen
            kind: Content kind
            artist: Artist label
            title: Title label
        """
        self._conn.execute(
            """
            INSERT INTO tracks (id, added_at, kind, artist, title)
            VALUES (?, ?, ?, ?, ?)
        """,
            (str(track_id), to_db_timestamp(added_at), kind.value, artist, title),
        )

    def get(self, track_id: UUID) -> dict[str, Any] | None:
        """Get a track row joined with its audio.

        Args:
            track_id: Track ID

        Returns:
            Row dict or None
        """
        cursor = self._conn.execute(
            """
            SELECT t.id, t.added_at, t.kind, t.artist, t.title,
                   a.content_type, a.bytes
            FROM tracks t
            JOIN track_audio a ON a.id = t.id
            WHERE t.id = ?
        """,
            (str(track_id),),
        )
        row: dict[str, Any] | None = cursor.fetchone()
        return row

    def delete(self, track_id: UUID) -> bool:
        """Delete a track (audio and matches cascade).

        Args:
            track_id: Track ID

        Returns:
            True if deleted, False if track not found
        """
        cursor = self._conn.execute("DELETE FROM tracks WHERE id = ?", (str(track_id),))
        return cursor.rowcount > 0

    def count_by_kind(self) -> dict[ContentKind, int]:
        """Count tracks per content kind."""
        cursor = self._conn.execute("SELECT kind, COUNT(*) AS count FROM tracks GROUP BY kind")
        return {ContentKind(row["kind"]): row["count"] for row in cursor.fetchall()}


class AudioRepository(BaseRepository):
    """Repository for track audio blobs."""

    def add(self, track_id: UUID, content_type: str, data: bytes) -> None:
        """Reserve a blob sized to the audio and write the bytes into it.

        Args:
            track_id: Track ID (must already exist in tracks)
            content_type: MIME type of the audio
            data: Audio bytes
        """
        cursor = self._conn.execute(
            "INSERT INTO track_audio (id, content_type, bytes) VALUES (?, ?, zeroblob(?))",
            (str(track_id), content_type, len(data)),
        )
        rowid = cursor.lastrowid
        if rowid is None:
            raise sqlite3.DatabaseError("No rowid for inserted audio row")

        with self._conn.blobopen("track_audio", "bytes", rowid) as blob:
            blob.write(data)

    def total_bytes(self) -> int:
        """Total size of stored audio."""
        row = self._conn.execute(
            "SELECT COALESCE(SUM(LENGTH(bytes)), 0) AS total FROM track_audio"
        ).fetchone()
        return int(row["total"])


class MatchRepository(BaseRepository):
    """Repository for match history."""

    def add(self, track_id: UUID, matched_at: datetime, score: int) -> None:
        """Append a match record.

        Args:
            track_id: Matched track ID
            matched_at: Time of the sighting
            score: Match score (0-100)
        """
        self._conn.execute(
            "INSERT INTO track_matches (id, matched_at, score) VALUES (?, ?, ?)",
            (str(track_id), to_db_timestamp(matched_at), score),
        )

    def get_for_track(self, track_id: UUID) -> list[MatchRecord]:
        """Get match history of a track, newest first.

        Args:
            track_id: Track ID

        Returns:
            List of match records
        """
        cursor = self._conn.execute(
            """
            SELECT matched_at, score FROM track_matches
            WHERE id = ?
            ORDER BY matched_at DESC, rowid DESC
        """,
            (str(track_id),),
        )
        return [
            MatchRecord(
                track_id=track_id,
                matched_at=from_db_timestamp(row["matched_at"]),
                score=row["score"],
            )
            for row in cursor.fetchall()
        ]

    def count(self) -> int:
        """Total number of match records."""
        row = self._conn.execute("SELECT COUNT(*) AS count FROM track_matches").fetchone()
        return int(row["count"])
