"""Climbing entities: regions, summits, routes, climbers, ascents and change markers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from typing import ClassVar
from uuid import UUID  # noqa: TC003

from gipfelsync.domain.model.entity import Entity, new_id, utcnow
from gipfelsync.domain.model.enums import Collection
from gipfelsync.domain.model.primitives import Difficulty, GpsPosition, TeufelsturmId


@dataclass(eq=False, kw_only=True)
class Region(Entity):
    COLLECTION: ClassVar[Collection] = Collection.REGIONS

    name: str


@dataclass(eq=False, kw_only=True)
class Summit(Entity):
    COLLECTION: ClassVar[Collection] = Collection.SUMMITS

    name: str
    region_id: UUID
    gps_position: GpsPosition | None = None
    teufelsturm_id: TeufelsturmId | None = None


@dataclass(eq=False, kw_only=True)
class Route(Entity):
    COLLECTION: ClassVar[Collection] = Collection.ROUTES

    name: str
    summit_id: UUID
    difficulty: Difficulty | None = None
    unsecure: bool = False
    stars: int = 0
    teufelsturm_id: TeufelsturmId | None = None
    teufelsturm_score: str | None = None


@dataclass(eq=False, kw_only=True)
class Climber(Entity):
    COLLECTION: ClassVar[Collection] = Collection.CLIMBERS

    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(eq=False, kw_only=True)
class AscentClimber:
    """One participant of an ascent; list position is significant."""

    id: UUID = field(default_factory=new_id)
    climber_id: UUID
    is_aborted: bool = False
    position: int | None = None


@dataclass(eq=False, kw_only=True)
class Ascent(Entity):
    COLLECTION: ClassVar[Collection] = Collection.ASCENTS

    date: datetime
    route_id: UUID
    climbers: list[AscentClimber] = field(default_factory=list["AscentClimber"])
    lead_climber_id: UUID | None = None
    is_aborted: bool = False
    is_top_rope: bool = False
    is_solo: bool = False
    is_without_support: bool = False
    notes: str | None = None


@dataclass(eq=False, kw_only=True)
class LastChange:
    """Side-channel marker consumed by cache invalidation downstream."""

    id: UUID = field(default_factory=new_id)
    collection_name: str
    last_modified: datetime = field(default_factory=utcnow)
