"""HTTP client for the fingerprint oracle.

The oracle is an EmySound-compatible REST service exposing two operations:
    query   - POST /api/v1.1/Query    (multipart audio, returns candidates)
    insert  - POST /api/v1.1/Tracks   (multipart audio + track metadata)
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import httpx

from .matcher import FingerprintResult

logger = logging.getLogger(__name__)


class OracleError(Exception):
    """The oracle call failed or returned unusable data."""


class OracleClient:
    """Query and populate the fingerprint oracle."""

    QUERY_PATH = "/api/v1.1/Query"
    TRACKS_PATH = "/api/v1.1/Tracks"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            base_url: Oracle base URL
            api_key: API key sent as basic-auth user name (empty for none)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        auth = httpx.BasicAuth(api_key, "") if api_key else None
        self._client = httpx.Client(
            base_url=base_url,
            auth=auth,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> OracleClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def query(self, audio: bytes, filename: str, min_confidence: float) -> list[FingerprintResult]:
        """Find catalogued tracks matching the audio.

        Args:
            audio: Audio bytes
            filename: File name hint sent with the audio
            min_confidence: Confidence floor applied by the oracle

        Returns:
            Candidates, each with coverage in [0, 1]

        Raises:
            OracleError: If the call fails or a candidate is malformed
        """
        try:
            response = self._client.post(
                self.QUERY_PATH,
                params={"mediaType": "Audio", "minConfidence": min_confidence},
                files={"file": (filename, audio, "application/octet-stream")},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise OracleError(f"Query failed for {filename}: {e}") from e
        except ValueError as e:
            raise OracleError(f"Query returned invalid JSON for {filename}: {e}") from e

        if not isinstance(payload, list):
            raise OracleError(f"Query returned {type(payload).__name__}, expected a list")

        results = [self._parse_result(item) for item in payload]
        for result in results:
            logger.debug("[Oracle] %s", result)
        return results

    def insert(
        self,
        audio: bytes,
        filename: str,
        track_id: UUID,
        artist: str,
        title: str,
    ) -> None:
        """Register audio with the oracle under a given track ID.

        Args:
            audio: Audio bytes
            filename: File name hint sent with the audio
            track_id: Track ID to register (shared with the catalog)
            artist: Artist label
            title: Title label

        Raises:
            OracleError: If the call fails
        """
        try:
            response = self._client.post(
                self.TRACKS_PATH,
                data={
                    "Id": str(track_id),
                    "Artist": artist,
                    "Title": title,
                    "MediaType": "Audio",
                },
                files={"file": (filename, audio, "application/octet-stream")},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise OracleError(f"Insert failed for {track_id}: {e}") from e

    @staticmethod
    def _parse_result(item: Any) -> FingerprintResult:
        """Decode one query candidate.

        Raises:
            OracleError: On missing id or coverage, or coverage outside [0, 1]
        """
        try:
            track = item["track"]
            track_id = UUID(str(track["id"]))
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"Candidate without a valid track id: {item!r}") from e

        try:
            coverage = float(item["audio"]["coverage"]["queryCoverage"])
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(f"Candidate {track_id} without coverage") from e

        result = FingerprintResult(
            track_id=track_id,
            coverage=coverage,
            artist=track.get("artist"),
            title=track.get("title"),
        )
        if not result.has_valid_coverage:
            raise OracleError(
                f"Coverage out of bounds for {track_id} "
                f"({result.artist!r}/{result.title!r}): {coverage}"
            )
        return result
