"""Domain primitives: scalar aliases + small value objects."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Final

type Meters = float
type TeufelsturmId = str

MAX_LATITUDE: Final[float] = 90.0
MAX_LONGITUDE: Final[float] = 180.0


@dataclass(frozen=True)
class GpsPosition:
    lat: float | None = None
    lng: float | None = None

    @property
    def is_valid(self) -> bool:
        """Both coordinates set, finite and on the globe."""
        if self.lat is None or self.lng is None:
            return False
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            return False
        return abs(self.lat) <= MAX_LATITUDE and abs(self.lng) <= MAX_LONGITUDE

    def swapped(self) -> GpsPosition:
        return GpsPosition(lat=self.lng, lng=self.lat)

    def __composite_values__(self) -> tuple[float | None, float | None]:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return (self.lat, self.lng)


def valid_position(position: GpsPosition | None) -> GpsPosition | None:
    """Collapse empty composites (all columns NULL) to ``None``."""
    if position is None or not position.is_valid:
        return None
    return position


@dataclass(frozen=True)
class Difficulty:
    """Saxon grading: jump grade, red-point, normal and without-support grade."""

    jump: str | None = None
    rp: str | None = None
    normal: str | None = None
    without_support: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.__composite_values__())

    def __composite_values__(self) -> tuple[str | None, str | None, str | None, str | None]:
        return (self.jump, self.rp, self.normal, self.without_support)
