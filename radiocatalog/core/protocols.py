"""Protocol definitions for the intake pipeline's collaborators.

Using Protocol (structural subtyping) lets the orchestrator accept any
change-detection policy or oracle implementation without a shared base
class.
"""

from typing import Protocol
from uuid import UUID

from radiocatalog.core.models import Segment
from soundmatch.matcher import FingerprintResult


class SegmentFilter(Protocol):
    """Decides whether a segment is new since the previous playlist refresh."""

    def need_download(self, segment: Segment) -> bool: ...


class FingerprintOracle(Protocol):
    """Remote audio fingerprinting service."""

    def query(
        self, audio: bytes, filename: str, min_confidence: float
    ) -> list[FingerprintResult]: ...

    def insert(
        self, audio: bytes, filename: str, track_id: UUID, artist: str, title: str
    ) -> None: ...
