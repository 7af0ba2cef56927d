"""Confidence scoring: maps each provider's native quality signal onto [0, 1].

Every scorer is monotonic in its provider's native signal: a stronger signal
never produces a lower confidence.
"""

from collections.abc import Callable
from typing import Any

from geo_resolver.lib.geocoder.base import GoogleExtra, NominatimExtra, OpenCageExtra, RawCandidate

# Google location_type → native confidence
GOOGLE_LOCATION_TYPE_CONFIDENCE: dict[str, float] = {
    "ROOFTOP": 1.0,
    "RANGE_INTERPOLATED": 0.85,
    "GEOMETRIC_CENTER": 0.6,
    "APPROXIMATE": 0.5,
}
GOOGLE_PARTIAL_MATCH_FACTOR = 0.8

GOOGLE_BASE = 0.65
GOOGLE_PLACE_ID_BONUS = 0.05
GOOGLE_NATIVE_WEIGHT = 0.3

NOMINATIM_BASE = 0.5
NOMINATIM_IMPORTANCE_WEIGHT = 0.4
NOMINATIM_OSM_ID_BONUS = 0.1

OPENCAGE_BASE = 0.5
OPENCAGE_GRADE_WEIGHT = 0.05
OPENCAGE_MAX_GRADE = 10


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(value, high))


def google_native_confidence(location_type: str | None, *, partial_match: bool = False) -> float:
    """Derive Google's native confidence from ``location_type`` and ``partial_match``."""
    confidence = GOOGLE_LOCATION_TYPE_CONFIDENCE.get(location_type or "", GOOGLE_LOCATION_TYPE_CONFIDENCE["APPROXIMATE"])
    if partial_match:
        confidence *= GOOGLE_PARTIAL_MATCH_FACTOR
    return confidence


def score_google(extra: GoogleExtra) -> float:
    """Score a Google candidate. Always above 0.6."""
    score = GOOGLE_BASE + GOOGLE_NATIVE_WEIGHT * _clamp(extra.native_confidence)
    if extra.place_id:
        score += GOOGLE_PLACE_ID_BONUS
    return _clamp(score)


def score_nominatim(extra: NominatimExtra) -> float:
    """Score a Nominatim candidate from its importance. Range [0.5, 1.0]."""
    score = NOMINATIM_BASE + NOMINATIM_IMPORTANCE_WEIGHT * _clamp(extra.importance)
    if extra.osm_id is not None:
        score += NOMINATIM_OSM_ID_BONUS
    return _clamp(score)


def score_opencage(extra: OpenCageExtra) -> float:
    """Score an OpenCage candidate from its 0-10 precision grade. Range [0.5, 1.0]."""
    grade = _clamp(extra.confidence, 0, OPENCAGE_MAX_GRADE)
    return _clamp(OPENCAGE_BASE + OPENCAGE_GRADE_WEIGHT * grade)


_SCORERS: dict[type, Callable[[Any], float]] = {
    GoogleExtra: score_google,
    NominatimExtra: score_nominatim,
    OpenCageExtra: score_opencage,
}


def score_candidate(candidate: RawCandidate) -> float:
    """Compute the service-wide confidence for a provider candidate.

    Args:
        candidate: Validated provider candidate.

    Returns:
        Confidence in [0, 1].

    Raises:
        TypeError: If no scorer is registered for the candidate's extra payload.
    """
    scorer = _SCORERS.get(type(candidate.extra))
    if scorer is None:
        msg = f"No confidence scorer for {type(candidate.extra).__name__}"
        raise TypeError(msg)
    return scorer(candidate.extra)
