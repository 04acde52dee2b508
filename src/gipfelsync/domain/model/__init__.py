"""Public domain model surface."""

from __future__ import annotations

from gipfelsync.domain.model.climbing import (
    Ascent,
    AscentClimber,
    Climber,
    LastChange,
    Region,
    Route,
    Summit,
)
from gipfelsync.domain.model.entity import Entity, new_id, utcnow
from gipfelsync.domain.model.enums import (
    COLLECTION_ORDER,
    Collection,
    MergeMode,
    MissingReferencePolicy,
    Outcome,
)
from gipfelsync.domain.model.primitives import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    Difficulty,
    GpsPosition,
    Meters,
    TeufelsturmId,
    valid_position,
)

type ClimbingEntity = Region | Summit | Route | Climber | Ascent

__all__ = [
    "COLLECTION_ORDER",
    "MAX_LATITUDE",
    "MAX_LONGITUDE",
    "Ascent",
    "AscentClimber",
    "Climber",
    "ClimbingEntity",
    "Collection",
    "Difficulty",
    "Entity",
    "GpsPosition",
    "LastChange",
    "MergeMode",
    "Meters",
    "MissingReferencePolicy",
    "Outcome",
    "Region",
    "Route",
    "Summit",
    "TeufelsturmId",
    "new_id",
    "utcnow",
    "valid_position",
]
