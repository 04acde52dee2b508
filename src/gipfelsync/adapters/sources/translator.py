"""Translate raw source records into typed reconciliation records."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from gipfelsync.domain.model import Collection
from gipfelsync.domain.reconciliation import (
    AscentParticipant,
    AscentRecord,
    ClimberRecord,
    GpsLocationRecord,
    RecordValidationError,
    RegionRecord,
    RouteRecord,
    SummitRecord,
)

from .schema import (
    AscentPayload,
    ClimberPayload,
    GpsLocationPayload,
    RegionPayload,
    RoutePayload,
    SummitPayload,
)

if TYPE_CHECKING:
    from gipfelsync.domain.reconciliation import SourceRecord


def _describe(exc: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}"
        for error in exc.errors()
    )
    return f"{exc.title}: {details}"


def _validate[M: BaseModel](model: type[M], raw: object) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise RecordValidationError(_describe(exc)) from exc


def region_record(payload: RegionPayload) -> RegionRecord:
    return RegionRecord(name=payload.name)


def summit_record(payload: SummitPayload) -> SummitRecord:
    return SummitRecord(
        name=payload.name,
        region=payload.region,
        gps_position=payload.gps_position.to_domain() if payload.gps_position else None,
        teufelsturm_id=payload.teufelsturm_id,
        provided=frozenset(payload.model_fields_set),
    )


def route_record(payload: RoutePayload) -> RouteRecord:
    return RouteRecord(
        name=payload.name,
        summit=payload.summit,
        region=payload.region,
        difficulty=payload.difficulty.to_domain() if payload.difficulty else None,
        unsecure=payload.unsecure,
        stars=payload.stars,
        teufelsturm_id=payload.teufelsturm_id,
        teufelsturm_score=payload.teufelsturm_score,
        provided=frozenset(payload.model_fields_set),
    )


def climber_record(payload: ClimberPayload) -> ClimberRecord:
    return ClimberRecord(first_name=payload.first_name, last_name=payload.last_name)


def ascent_record(payload: AscentPayload) -> AscentRecord:
    provided = set(payload.model_fields_set)
    # the date key always carries the full timestamp
    provided.discard("number")
    return AscentRecord(
        date=payload.timestamp,
        route=payload.route,
        summit=payload.summit,
        region=payload.region,
        climbers=tuple(
            AscentParticipant(climber=entry.climber.to_name(), is_aborted=entry.is_aborted)
            for entry in payload.climbers
        ),
        lead_climber=payload.lead_climber.to_name() if payload.lead_climber else None,
        is_aborted=payload.is_aborted,
        is_top_rope=payload.is_top_rope,
        is_solo=payload.is_solo,
        is_without_support=payload.is_without_support,
        notes=payload.notes,
        provided=frozenset(provided),
    )


_PARSERS: dict[Collection, Callable[[object], SourceRecord]] = {
    Collection.REGIONS: lambda raw: region_record(_validate(RegionPayload, raw)),
    Collection.SUMMITS: lambda raw: summit_record(_validate(SummitPayload, raw)),
    Collection.ROUTES: lambda raw: route_record(_validate(RoutePayload, raw)),
    Collection.CLIMBERS: lambda raw: climber_record(_validate(ClimberPayload, raw)),
    Collection.ASCENTS: lambda raw: ascent_record(_validate(AscentPayload, raw)),
}


class PydanticRecordParser:
    """``RecordParser`` backed by the pydantic source schemas."""

    def parse(self, collection: Collection, raw: object) -> SourceRecord:
        return _PARSERS[collection](raw)

    def parse_gps_location(self, raw: object) -> GpsLocationRecord:
        payload = _validate(GpsLocationPayload, raw)
        return GpsLocationRecord(
            name=payload.name,
            region=payload.region,
            gps_position=payload.gps_position.to_domain(),
        )
