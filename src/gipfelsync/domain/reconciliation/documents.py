"""Dynamically-typed document view of entities.

Change detection and replace/update writes operate on plain dicts so that one
structural comparison serves every collection. Value objects appear as nested
dicts, ascent participants as an ordered list of dicts.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, cast

from gipfelsync.domain.model import (
    Ascent,
    AscentClimber,
    Climber,
    Collection,
    Difficulty,
    GpsPosition,
    Region,
    Route,
    Summit,
    valid_position,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from gipfelsync.domain.model import ClimbingEntity
    from gipfelsync.domain.ports import ClimbingRepositories

type Document = dict[str, object]

EXCLUDED_FIELDS: Final[frozenset[str]] = frozenset({"id", "version", "created_at", "updated_at"})


def position_document(position: GpsPosition | None) -> dict[str, float | None] | None:
    position = valid_position(position)
    if position is None:
        return None
    return {"lat": position.lat, "lng": position.lng}


def position_from_document(value: object) -> GpsPosition | None:
    if value is None:
        return None
    if isinstance(value, GpsPosition):
        return valid_position(value)
    data = cast(Mapping[str, Any], value)
    return valid_position(GpsPosition(lat=data.get("lat"), lng=data.get("lng")))


def difficulty_document(difficulty: Difficulty | None) -> dict[str, str | None] | None:
    if difficulty is None or difficulty.is_empty:
        return None
    return {
        "jump": difficulty.jump,
        "rp": difficulty.rp,
        "normal": difficulty.normal,
        "without_support": difficulty.without_support,
    }


def difficulty_from_document(value: object) -> Difficulty | None:
    if value is None:
        return None
    if isinstance(value, Difficulty):
        return None if value.is_empty else value
    data = cast(Mapping[str, Any], value)
    difficulty = Difficulty(
        jump=data.get("jump"),
        rp=data.get("rp"),
        normal=data.get("normal"),
        without_support=data.get("without_support"),
    )
    return None if difficulty.is_empty else difficulty


def _bookkeeping(entity: ClimbingEntity) -> Document:
    return {"id": entity.id, "created_at": entity.created_at, "updated_at": entity.updated_at}


def to_document(entity: ClimbingEntity) -> Document:
    """Return the document form of ``entity`` including bookkeeping fields."""

    document = _bookkeeping(entity)
    match entity:
        case Region():
            document["name"] = entity.name
        case Summit():
            document.update(
                name=entity.name,
                region_id=entity.region_id,
                gps_position=position_document(entity.gps_position),
                teufelsturm_id=entity.teufelsturm_id,
            )
        case Route():
            document.update(
                name=entity.name,
                summit_id=entity.summit_id,
                difficulty=difficulty_document(entity.difficulty),
                unsecure=entity.unsecure,
                stars=entity.stars,
                teufelsturm_id=entity.teufelsturm_id,
                teufelsturm_score=entity.teufelsturm_score,
            )
        case Climber():
            document.update(first_name=entity.first_name, last_name=entity.last_name)
        case Ascent():
            document.update(
                date=entity.date,
                route_id=entity.route_id,
                climbers=[
                    {"climber_id": participant.climber_id, "is_aborted": participant.is_aborted}
                    for participant in entity.climbers
                ],
                lead_climber_id=entity.lead_climber_id,
                is_aborted=entity.is_aborted,
                is_top_rope=entity.is_top_rope,
                is_solo=entity.is_solo,
                is_without_support=entity.is_without_support,
                notes=entity.notes,
            )
    return document


def _participants(value: object) -> list[AscentClimber]:
    entries = cast(list[Mapping[str, Any]], value or [])
    return [
        AscentClimber(
            climber_id=entry["climber_id"],
            is_aborted=bool(entry.get("is_aborted", False)),
            position=index,
        )
        for index, entry in enumerate(entries)
    ]


_CONVERTERS: Final[dict[str, Callable[[object], object]]] = {
    "gps_position": position_from_document,
    "difficulty": difficulty_from_document,
    "climbers": _participants,
}


def apply_document(entity: ClimbingEntity, document: Mapping[str, object]) -> None:
    """Write every non-bookkeeping field of ``document`` onto ``entity``."""

    for key, value in document.items():
        if key in EXCLUDED_FIELDS:
            continue
        converter = _CONVERTERS.get(key)
        setattr(entity, key, converter(value) if converter else value)


@dataclass(frozen=True, slots=True)
class EntityKind:
    """Per-collection knowledge the merge executor needs."""

    collection: Collection
    entity_cls: type[ClimbingEntity]
    # fields a replace resets when the candidate leaves them out
    replace_defaults: Mapping[str, object]
    find_existing: Callable[[ClimbingRepositories, Mapping[str, Any]], ClimbingEntity | None]
    add: Callable[[ClimbingRepositories, Any], None]

    def build(self, document: Mapping[str, object], *, now: datetime) -> ClimbingEntity:
        converted: dict[str, object] = {}
        for key, value in document.items():
            if key in EXCLUDED_FIELDS:
                continue
            converter = _CONVERTERS.get(key)
            converted[key] = converter(value) if converter else value
        entity_cls = cast(Callable[..., "ClimbingEntity"], self.entity_cls)
        return entity_cls(created_at=now, updated_at=now, **converted)

    def replacement(self, document: Mapping[str, object]) -> Document:
        return {**self.replace_defaults, **document}


def _find_region(repos: ClimbingRepositories, doc: Mapping[str, Any]) -> Region | None:
    return repos.regions.get_by_name(doc["name"])


def _find_summit(repos: ClimbingRepositories, doc: Mapping[str, Any]) -> Summit | None:
    return repos.summits.get_by_natural_key(doc["name"], doc["region_id"])


def _find_route(repos: ClimbingRepositories, doc: Mapping[str, Any]) -> Route | None:
    return repos.routes.get_by_natural_key(doc["name"], doc["summit_id"])


def _find_climber(repos: ClimbingRepositories, doc: Mapping[str, Any]) -> Climber | None:
    return repos.climbers.get_by_name(doc["first_name"], doc["last_name"])


def _find_ascent(repos: ClimbingRepositories, doc: Mapping[str, Any]) -> Ascent | None:
    lead: UUID | None = doc.get("lead_climber_id")
    return repos.ascents.get_by_natural_key(doc["date"], doc["route_id"], lead)


ENTITY_KINDS: Final[Mapping[Collection, EntityKind]] = {
    Collection.REGIONS: EntityKind(
        collection=Collection.REGIONS,
        entity_cls=Region,
        replace_defaults={},
        find_existing=_find_region,
        add=lambda repos, entity: repos.regions.add(entity),
    ),
    Collection.SUMMITS: EntityKind(
        collection=Collection.SUMMITS,
        entity_cls=Summit,
        replace_defaults={"gps_position": None, "teufelsturm_id": None},
        find_existing=_find_summit,
        add=lambda repos, entity: repos.summits.add(entity),
    ),
    Collection.ROUTES: EntityKind(
        collection=Collection.ROUTES,
        entity_cls=Route,
        replace_defaults={
            "difficulty": None,
            "unsecure": False,
            "stars": 0,
            "teufelsturm_id": None,
            "teufelsturm_score": None,
        },
        find_existing=_find_route,
        add=lambda repos, entity: repos.routes.add(entity),
    ),
    Collection.CLIMBERS: EntityKind(
        collection=Collection.CLIMBERS,
        entity_cls=Climber,
        replace_defaults={},
        find_existing=_find_climber,
        add=lambda repos, entity: repos.climbers.add(entity),
    ),
    Collection.ASCENTS: EntityKind(
        collection=Collection.ASCENTS,
        entity_cls=Ascent,
        replace_defaults={
            "climbers": [],
            "lead_climber_id": None,
            "is_aborted": False,
            "is_top_rope": False,
            "is_solo": False,
            "is_without_support": False,
            "notes": None,
        },
        find_existing=_find_ascent,
        add=lambda repos, entity: repos.ascents.add(entity),
    ),
}
