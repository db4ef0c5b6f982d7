"""Fuzzy-match confidence between a local entity and a MusicBrainz candidate.

Hey future me - both sides go through normalize_for_sorting() first, the SAME
normalization the library uses for alphabetical sorting. So "The Beatles" and
"Beatles" compare as identical, "Beyoncé" matches "Beyonce". The ratio itself is
rapidfuzz's edit-distance ratio scaled to 0-1.

Scores are rounded to 6 decimals BEFORE the threshold check. That is the float-noise
guard for the weighted album sum: 0.7 * a + 0.3 * b can land a few ULPs under a
threshold the inputs really meet. The flip side is deliberate: any raw score in
[0.8499995, 0.85) counts as 0.85 and auto-applies at threshold 0.85. The rounded value
is also what gets stored on the conflict, so the check and the display never disagree.
"""

import logging

from rapidfuzz import fuzz

from echometa.domain.entities import EnrichmentTarget, EntityType, SearchCandidate
from echometa.domain.value_objects import normalize_for_sorting

logger = logging.getLogger(__name__)

ALBUM_NAME_WEIGHT = 0.7
ARTIST_NAME_WEIGHT = 0.3

# Rounding applied to every score, see module docstring
_PRECISION = 6


def meets_threshold(confidence: float, threshold: float) -> bool:
    """Inclusive threshold check shared by auto-search and the apply decision."""
    return confidence >= threshold


def name_similarity(left: str | None, right: str | None) -> float:
    """0-1 similarity of two names after sort-normalization (0.0 if either is empty)."""
    left_normalized = normalize_for_sorting(left)
    right_normalized = normalize_for_sorting(right)
    if not left_normalized or not right_normalized:
        return 0.0
    return fuzz.ratio(left_normalized, right_normalized) / 100.0


def _clamp(value: float) -> float:
    return round(min(1.0, max(0.0, value)), _PRECISION)


class ConfidenceScorer:
    """Deterministic scorer for auto-search candidates."""

    def score_artist(self, local_name: str, candidate_name: str) -> float:
        return _clamp(name_similarity(local_name, candidate_name))

    def score_album(
        self,
        local_name: str,
        candidate_name: str,
        local_artist: str | None,
        candidate_artist: str | None,
    ) -> float:
        """Weighted album (0.7) and artist (0.3) similarity.

        A missing artist on either side contributes 0, so an album whose artist
        is unknown can never reach a typical auto-apply threshold on its own.
        """
        album_similarity = name_similarity(local_name, candidate_name)
        artist_similarity = name_similarity(local_artist, candidate_artist)
        return _clamp(
            ALBUM_NAME_WEIGHT * album_similarity + ARTIST_NAME_WEIGHT * artist_similarity
        )

    def score(self, target: EnrichmentTarget, candidate: SearchCandidate) -> float:
        if target.entity_type is EntityType.ALBUM:
            return self.score_album(
                target.name, candidate.name, target.artist_name, candidate.artist_name
            )
        return self.score_artist(target.name, candidate.name)

    def rank(
        self, target: EnrichmentTarget, candidates: list[SearchCandidate]
    ) -> list[SearchCandidate]:
        """Score every candidate and sort best first.

        Ties keep the provider's own order (sorted() is stable), so the
        winner for identical inputs is always the same candidate.
        """
        for candidate in candidates:
            candidate.confidence = self.score(target, candidate)
        ranked = sorted(candidates, key=lambda c: c.confidence, reverse=True)
        if ranked:
            logger.debug(
                "Best candidate for '%s': %s (%s) confidence=%.3f",
                target.name,
                ranked[0].name,
                ranked[0].external_id,
                ranked[0].confidence,
            )
        return ranked

    def best(
        self, target: EnrichmentTarget, candidates: list[SearchCandidate]
    ) -> SearchCandidate | None:
        ranked = self.rank(target, candidates)
        return ranked[0] if ranked else None
