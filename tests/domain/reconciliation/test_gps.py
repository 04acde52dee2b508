from __future__ import annotations

import logging
import math

import pytest

from gipfelsync.domain.model import GpsPosition
from gipfelsync.domain.reconciliation import (
    EARTH_RADIUS_METERS,
    GpsMergePolicy,
    haversine_distance,
)
from tests.helpers.climbing import offset

ORIGIN = GpsPosition(lat=50.9, lng=14.0)


def test_haversine_distance_of_one_degree_latitude() -> None:
    distance = haversine_distance(GpsPosition(lat=0.0, lng=0.0), GpsPosition(lat=1.0, lng=0.0))

    assert EARTH_RADIUS_METERS == 6_371_000
    assert distance == pytest.approx(111_194.93, abs=0.01)


def test_haversine_distance_is_symmetric_and_zero_for_same_point() -> None:
    other = GpsPosition(lat=50.91, lng=14.02)

    assert haversine_distance(ORIGIN, ORIGIN) == 0
    assert haversine_distance(ORIGIN, other) == pytest.approx(haversine_distance(other, ORIGIN))


def test_haversine_distance_requires_coordinates() -> None:
    with pytest.raises(ValueError, match="both coordinates"):
        haversine_distance(ORIGIN, GpsPosition(lat=50.9))


def test_missing_stored_position_always_accepts() -> None:
    policy = GpsMergePolicy(change_distance_threshold=0.0)

    decision = policy.evaluate("Lokomotive", None, ORIGIN)

    assert decision.accepted
    assert decision.distance is None


def test_empty_stored_composite_counts_as_missing() -> None:
    policy = GpsMergePolicy(change_distance_threshold=0.0)

    assert policy.evaluate("Lokomotive", GpsPosition(), ORIGIN).accepted


def test_candidate_without_coordinates_is_refused() -> None:
    policy = GpsMergePolicy(change_distance_threshold=100.0)

    assert not policy.evaluate("Lokomotive", ORIGIN, GpsPosition(lat=50.9)).accepted
    assert not policy.evaluate("Lokomotive", ORIGIN, None).accepted


def test_threshold_is_inclusive() -> None:
    candidate = GpsPosition(lat=50.9005, lng=14.0003)
    distance = haversine_distance(ORIGIN, candidate)

    assert GpsMergePolicy(change_distance_threshold=distance).evaluate(
        "Lokomotive", ORIGIN, candidate
    ).accepted
    assert not GpsMergePolicy(change_distance_threshold=distance - 1e-6).evaluate(
        "Lokomotive", ORIGIN, candidate
    ).accepted


def test_move_of_150_meters_is_refused_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    policy = GpsMergePolicy(change_distance_threshold=100.0, log_distance_threshold=25.0)
    candidate = offset(ORIGIN, north_meters=150.0)

    with caplog.at_level(logging.WARNING, logger="gipfelsync.domain.reconciliation.gps"):
        decision = policy.evaluate("Lokomotive", ORIGIN, candidate)

    assert not decision.accepted
    assert decision.distance == pytest.approx(150.0, abs=0.5)
    assert "Lokomotive" in caplog.text
    assert "above threshold" in caplog.text


def test_notable_accepted_move_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    policy = GpsMergePolicy(change_distance_threshold=100.0, log_distance_threshold=25.0)

    with caplog.at_level(logging.INFO, logger="gipfelsync.domain.reconciliation.gps"):
        small = policy.evaluate("Lokomotive", ORIGIN, offset(ORIGIN, north_meters=10.0))
        assert caplog.records == []
        notable = policy.evaluate("Lokomotive", ORIGIN, offset(ORIGIN, north_meters=60.0))

    assert small.accepted
    assert notable.accepted
    assert [record.levelno for record in caplog.records] == [logging.INFO]


@pytest.mark.parametrize(
    ("change", "log_threshold"),
    [(-1.0, 0.0), (100.0, -5.0), (50.0, 60.0)],
)
def test_invalid_thresholds_are_rejected(change: float, log_threshold: float) -> None:
    with pytest.raises(ValueError, match="threshold"):
        GpsMergePolicy(change_distance_threshold=change, log_distance_threshold=log_threshold)


@pytest.mark.parametrize(
    "position",
    [
        GpsPosition(lat=50.9),
        GpsPosition(lat=math.nan, lng=14.0),
        GpsPosition(lat=50.9, lng=math.inf),
        GpsPosition(lat=-math.inf, lng=14.0),
        GpsPosition(lat=91.0, lng=14.0),
        GpsPosition(lat=50.9, lng=-180.5),
    ],
)
def test_incomplete_or_off_globe_positions_are_invalid(position: GpsPosition) -> None:
    assert not position.is_valid


def test_boundary_positions_are_valid() -> None:
    assert GpsPosition(lat=-90.0, lng=180.0).is_valid
    assert ORIGIN.swapped() == GpsPosition(lat=14.0, lng=50.9)


@pytest.mark.parametrize(
    "candidate",
    [
        GpsPosition(lat=math.nan, lng=14.02),
        GpsPosition(lat=50.91, lng=math.inf),
        GpsPosition(lat=120.0, lng=14.02),
    ],
)
def test_non_finite_candidate_never_passes_the_gate(candidate: GpsPosition) -> None:
    policy = GpsMergePolicy(change_distance_threshold=100.0, log_distance_threshold=25.0)

    decision = policy.evaluate("Lokomotive", ORIGIN, candidate)

    assert not decision.accepted
    assert decision.distance is None


def test_stored_non_finite_position_is_replaced() -> None:
    policy = GpsMergePolicy(change_distance_threshold=0.0)

    assert policy.evaluate("Lokomotive", GpsPosition(lat=math.nan, lng=14.0), ORIGIN).accepted


def test_zero_log_threshold_logs_every_accepted_position(
    caplog: pytest.LogCaptureFixture,
) -> None:
    policy = GpsMergePolicy(change_distance_threshold=100.0, log_distance_threshold=0.0)

    with caplog.at_level(logging.INFO, logger="gipfelsync.domain.reconciliation.gps"):
        decision = policy.evaluate("Lokomotive", ORIGIN, ORIGIN)

    assert decision.accepted
    assert decision.distance == 0
    assert [record.levelno for record in caplog.records] == [logging.INFO]
