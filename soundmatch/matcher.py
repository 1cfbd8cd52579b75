"""Consolidate fingerprint query results into genuine matches.

The oracle returns every candidate above its own confidence floor. A
candidate is accepted when:
  - its score alone reaches the single-match threshold, or
  - another candidate with a different track id shares its artist or title
    and the two scores together amount to roughly one full match.

The second rule covers the oracle splitting one true match across two
fragment ids. It is a heuristic, not a proof of identity.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FingerprintResult:
    """One candidate returned by an oracle query.

    Attributes:
        track_id: Oracle track ID
        coverage: Fraction of the query audio covered by the candidate (0.0 to 1.0)
        artist: Artist registered with the candidate
        title: Title registered with the candidate
    """

    track_id: UUID
    coverage: float
    artist: str | None = None
    title: str | None = None

    @property
    def has_valid_coverage(self) -> bool:
        return 0.0 <= self.coverage <= 1.0

    def score(self) -> int:
        """Coverage as an integer percentage.

        The percentage is rounded to 9 decimal places, then truncated:
        floor(round(coverage * 100, 9)). Coverage within 1e-9 of the next
        whole percent therefore scores that percent (0.99999999999 -> 100).

        Raises:
            ValueError: If coverage lies outside [0, 1]
        """
        if not self.has_valid_coverage:
            raise ValueError(f"Coverage out of bounds: {self.coverage}")
        # Rounding first keeps 0.29 -> 29 despite binary float error
        return math.floor(round(self.coverage * 100, 9))


class MatchConsolidator:
    """Filter oracle candidates down to genuine matches."""

    def __init__(
        self,
        single_threshold: int = 75,  # Score trusted on its own
        pair_min: int = 90,  # Lowest combined score of a split match
        pair_max: int = 100,  # Highest combined score of a split match
    ):
        """Initialize consolidator.

        Args:
            single_threshold: Minimum score accepted without corroboration
            pair_min: Minimum combined score of two corroborating candidates
            pair_max: Maximum combined score of two corroborating candidates
        """
        self.single_threshold = single_threshold
        self.pair_min = pair_min
        self.pair_max = pair_max

    def consolidate(self, results: list[FingerprintResult]) -> list[FingerprintResult]:
        """Keep the candidates considered genuine matches.

        Args:
            results: Oracle candidates with valid coverage

        Returns:
            Accepted candidates, in input order
        """
        return [r for r in results if self._is_match(r, results)]

    def _is_match(self, result: FingerprintResult, results: list[FingerprintResult]) -> bool:
        score = result.score()
        if score >= self.single_threshold:
            return True

        for other in results:
            if other.track_id == result.track_id:
                continue
            if other.artist != result.artist and other.title != result.title:
                continue
            if self.pair_min <= score + other.score() <= self.pair_max:
                logger.debug("[Matcher] Paired match: %s - %s", result, other)
                return True
        return False


def consolidate(results: list[FingerprintResult]) -> list[FingerprintResult]:
    """Consolidate with the default thresholds (75 single, 90-100 pair)."""
    return MatchConsolidator().consolidate(results)
