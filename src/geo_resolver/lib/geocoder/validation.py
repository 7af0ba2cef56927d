"""Coordinate sanity checks applied to every provider candidate."""

import math
from numbers import Real

MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0


def is_valid_coordinates(lat: object, lng: object) -> bool:
    """Return True if ``lat``/``lng`` form a physically possible WGS84 point.

    Args:
        lat: Candidate latitude.
        lng: Candidate longitude.

    Returns:
        True iff both values are finite real numbers within range.
    """
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, Real):
            return False
        if not math.isfinite(value):
            return False
    return MIN_LATITUDE <= lat <= MAX_LATITUDE and MIN_LONGITUDE <= lng <= MAX_LONGITUDE  # type: ignore[operator]
