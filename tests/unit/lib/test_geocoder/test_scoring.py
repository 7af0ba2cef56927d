"""Unit tests for provider confidence scoring."""

from dataclasses import dataclass

import pytest

from geo_resolver.lib.geocoder.base import GoogleExtra, NominatimExtra, OpenCageExtra, RawCandidate
from geo_resolver.lib.geocoder.scoring import (
    google_native_confidence,
    score_candidate,
    score_google,
    score_nominatim,
    score_opencage,
)


class TestGoogleNativeConfidence:
    """Tests for location_type → native confidence mapping."""

    @pytest.mark.parametrize(
        ("location_type", "expected"),
        [
            ("ROOFTOP", 1.0),
            ("RANGE_INTERPOLATED", 0.85),
            ("GEOMETRIC_CENTER", 0.6),
            ("APPROXIMATE", 0.5),
        ],
    )
    def test_location_types(self, location_type: str, expected: float) -> None:
        assert google_native_confidence(location_type) == pytest.approx(expected)

    def test_unknown_type_treated_as_approximate(self) -> None:
        assert google_native_confidence(None) == pytest.approx(0.5)
        assert google_native_confidence("SOMETHING_NEW") == pytest.approx(0.5)

    def test_partial_match_lowers_confidence(self) -> None:
        assert google_native_confidence("ROOFTOP", partial_match=True) == pytest.approx(0.8)


class TestScoreGoogle:
    """Tests for score_google."""

    @pytest.mark.parametrize("native", [0.0, 0.25, 0.5, 0.75, 1.0])
    @pytest.mark.parametrize("place_id", [None, "ChIJ123"])
    def test_always_above_point_six(self, native: float, place_id: str | None) -> None:
        score = score_google(GoogleExtra(place_id=place_id, native_confidence=native))
        assert 0.6 < score <= 1.0

    def test_best_case_is_one(self) -> None:
        assert score_google(GoogleExtra(place_id="ChIJ123", native_confidence=1.0)) == pytest.approx(1.0)

    def test_place_id_adds_bonus(self) -> None:
        without = score_google(GoogleExtra(place_id=None, native_confidence=0.5))
        with_id = score_google(GoogleExtra(place_id="ChIJ123", native_confidence=0.5))
        assert with_id == pytest.approx(without + 0.05)

    def test_monotonic_in_native_confidence(self) -> None:
        scores = [score_google(GoogleExtra(place_id="x", native_confidence=n / 10)) for n in range(11)]
        assert scores == sorted(scores)


class TestScoreNominatim:
    """Tests for score_nominatim."""

    @pytest.mark.parametrize("importance", [0.0, 0.1, 0.5, 0.9, 1.0, 1.7])
    @pytest.mark.parametrize("osm_id", [None, 12345])
    def test_within_range(self, importance: float, osm_id: int | None) -> None:
        score = score_nominatim(NominatimExtra(osm_id=osm_id, importance=importance))
        assert 0.5 <= score <= 1.0

    def test_formula(self) -> None:
        assert score_nominatim(NominatimExtra(osm_id=None, importance=0.5)) == pytest.approx(0.7)
        assert score_nominatim(NominatimExtra(osm_id=1, importance=0.5)) == pytest.approx(0.8)

    def test_monotonic_in_importance(self) -> None:
        scores = [score_nominatim(NominatimExtra(osm_id=1, importance=i / 10)) for i in range(11)]
        assert scores == sorted(scores)


class TestScoreOpenCage:
    """Tests for score_opencage."""

    def test_grade_range(self) -> None:
        assert score_opencage(OpenCageExtra(confidence=0)) == pytest.approx(0.5)
        assert score_opencage(OpenCageExtra(confidence=10)) == pytest.approx(1.0)

    def test_out_of_range_grade_clamped(self) -> None:
        assert score_opencage(OpenCageExtra(confidence=15)) == pytest.approx(1.0)
        assert score_opencage(OpenCageExtra(confidence=-3)) == pytest.approx(0.5)

    def test_monotonic_in_grade(self) -> None:
        scores = [score_opencage(OpenCageExtra(confidence=g)) for g in range(11)]
        assert scores == sorted(scores)


class TestScoreCandidate:
    """Tests for score_candidate dispatch."""

    def test_dispatches_on_extra_type(self) -> None:
        candidate = RawCandidate(latitude=1.0, longitude=2.0, extra=NominatimExtra(osm_id=None, importance=0.25))
        assert score_candidate(candidate) == pytest.approx(0.6)

    def test_google_candidate(self) -> None:
        candidate = RawCandidate(
            latitude=1.0,
            longitude=2.0,
            extra=GoogleExtra(place_id="abc", native_confidence=google_native_confidence("ROOFTOP")),
        )
        assert score_candidate(candidate) == pytest.approx(1.0)

    def test_unknown_extra_raises(self) -> None:
        @dataclass(frozen=True)
        class UnknownExtra:
            provider = "unknown"

        candidate = RawCandidate(latitude=1.0, longitude=2.0, extra=UnknownExtra())  # type: ignore[arg-type]
        with pytest.raises(TypeError, match="UnknownExtra"):
            score_candidate(candidate)
