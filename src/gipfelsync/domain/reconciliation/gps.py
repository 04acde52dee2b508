"""Distance-gated merge policy for summit GPS positions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Final

from gipfelsync.domain.model import GpsPosition, Meters, valid_position

log = logging.getLogger(__name__)

EARTH_RADIUS_METERS: Final[Meters] = 6_371_000.0


def _coordinates(position: GpsPosition) -> tuple[float, float]:
    if position.lat is None or position.lng is None:
        raise ValueError("haversine_distance requires positions with both coordinates")
    return math.radians(position.lat), math.radians(position.lng)


def haversine_distance(first: GpsPosition, second: GpsPosition) -> Meters:
    """Great-circle distance in metres between two valid positions."""

    lat1, lng1 = _coordinates(first)
    lat2, lng2 = _coordinates(second)
    delta_lat = lat2 - lat1
    delta_lng = lng2 - lng1

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True, slots=True, kw_only=True)
class GpsDecision:
    accepted: bool
    distance: Meters | None = None
    reason: str


@dataclass(frozen=True, slots=True)
class GpsMergePolicy:
    """Accept a new position only within ``change_distance_threshold`` of the stored one.

    Accepted moves at or beyond ``log_distance_threshold`` are logged so notable
    corrections stay visible; refused moves are logged as warnings.
    """

    change_distance_threshold: Meters
    log_distance_threshold: Meters = 0.0

    def __post_init__(self) -> None:
        if self.change_distance_threshold < 0 or self.log_distance_threshold < 0:
            raise ValueError("GPS distance thresholds must be non-negative")
        if self.log_distance_threshold > self.change_distance_threshold:
            raise ValueError(
                "log_distance_threshold must not exceed change_distance_threshold "
                f"({self.log_distance_threshold} > {self.change_distance_threshold})"
            )

    def evaluate(
        self,
        summit: str,
        existing: GpsPosition | None,
        candidate: GpsPosition | None,
    ) -> GpsDecision:
        if candidate is None or not candidate.is_valid:
            return GpsDecision(accepted=False, reason="candidate has no valid coordinates")

        current = valid_position(existing)
        if current is None:
            return GpsDecision(accepted=True, reason="no stored position")

        distance = haversine_distance(current, candidate)
        if distance > self.change_distance_threshold:
            log.warning(
                "GPS update for %s skipped: distance %.2f m is above threshold %s m",
                summit,
                distance,
                self.change_distance_threshold,
            )
            return GpsDecision(accepted=False, distance=distance, reason="distance above threshold")

        if distance >= self.log_distance_threshold:
            log.info(
                "GPS position for %s moves by %.2f m (%s,%s -> %s,%s)",
                summit,
                distance,
                current.lat,
                current.lng,
                candidate.lat,
                candidate.lng,
            )
        return GpsDecision(accepted=True, distance=distance, reason="within threshold")
