"""Pydantic models describing source records and GeoJSON files."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gipfelsync.domain.model import MAX_LATITUDE, MAX_LONGITUDE, Difficulty, GpsPosition
from gipfelsync.domain.reconciliation import ClimberName

TEUFELSTURM_SCORES = frozenset(str(score) for score in range(-3, 4))


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _to_text(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return str(value)
    return _blank_to_none(value)


def _strip(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


def split_climber_name(value: str) -> ClimberName:
    """Split ``"First Last"`` on the first space; single words get an empty last name."""

    first, _, last = value.strip().partition(" ")
    return ClimberName(first_name=first, last_name=last.strip())


class SourceBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, allow_inf_nan=False)


NonEmptyStr = Annotated[str, Field(min_length=1)]


class GpsPositionPayload(SourceBaseModel):
    lat: float | None = Field(default=None, ge=-MAX_LATITUDE, le=MAX_LATITUDE)
    lng: float | None = Field(default=None, ge=-MAX_LONGITUDE, le=MAX_LONGITUDE)

    def to_domain(self) -> GpsPosition:
        return GpsPosition(lat=self.lat, lng=self.lng)


class DifficultyPayload(SourceBaseModel):
    jump: str | None = None
    rp: str | None = Field(default=None, alias="RP")
    normal: str | None = None
    without_support: str | None = Field(default=None, alias="withoutSupport")

    _normalize_grades = field_validator("jump", "rp", "normal", "without_support", mode="before")(
        _to_text
    )

    def to_domain(self) -> Difficulty:
        return Difficulty(
            jump=self.jump,
            rp=self.rp,
            normal=self.normal,
            without_support=self.without_support,
        )


class RegionPayload(SourceBaseModel):
    name: NonEmptyStr

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_name(cls, value: object) -> object:
        if isinstance(value, str):
            return {"name": value}
        return value

    _strip_name = field_validator("name", mode="before")(_strip)


class SummitPayload(SourceBaseModel):
    name: NonEmptyStr
    region: NonEmptyStr
    gps_position: GpsPositionPayload | None = Field(default=None, alias="gpsPosition")
    teufelsturm_id: str | None = Field(default=None, alias="teufelsturmId")

    _strip_names = field_validator("name", "region", mode="before")(_strip)
    _normalize_id = field_validator("teufelsturm_id", mode="before")(_to_text)


class RoutePayload(SourceBaseModel):
    name: NonEmptyStr
    summit: NonEmptyStr
    region: str | None = None
    difficulty: DifficultyPayload | None = None
    unsecure: bool = False
    stars: int = Field(default=0, ge=0, le=2)
    teufelsturm_id: str | None = Field(default=None, alias="teufelsturmId")
    teufelsturm_score: str | None = Field(default=None, alias="teufelsturmScore")

    _strip_names = field_validator("name", "summit", mode="before")(_strip)
    _normalize_region = field_validator("region", mode="before")(_blank_to_none)
    _normalize_ids = field_validator("teufelsturm_id", "teufelsturm_score", mode="before")(
        _to_text
    )

    @field_validator("teufelsturm_score")
    @classmethod
    def _check_score(cls, value: str | None) -> str | None:
        if value is not None and value not in TEUFELSTURM_SCORES:
            raise ValueError("must be between -3 and 3")
        return value


class ClimberPayload(SourceBaseModel):
    first_name: NonEmptyStr = Field(alias="firstName")
    last_name: str = Field(default="", alias="lastName")

    @model_validator(mode="before")
    @classmethod
    def _accept_full_name(cls, value: object) -> object:
        if isinstance(value, str):
            name = split_climber_name(value)
            return {"firstName": name.first_name, "lastName": name.last_name}
        return value

    _strip_names = field_validator("first_name", "last_name", mode="before")(_strip)

    def to_name(self) -> ClimberName:
        return ClimberName(first_name=self.first_name, last_name=self.last_name)


class AscentClimberPayload(SourceBaseModel):
    climber: ClimberPayload
    is_aborted: bool = Field(default=False, alias="isAborted")

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_climber(cls, value: object) -> object:
        if isinstance(value, str):
            return {"climber": value}
        return value


def _parse_date(value: object) -> object:
    # Date-only values mean midnight UTC.
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str) and len(value.strip()) == len("YYYY-MM-DD"):
        return date.fromisoformat(value.strip()).isoformat() + "T00:00:00+00:00"
    return value


class AscentPayload(SourceBaseModel):
    date: datetime
    number: int | None = Field(default=None, ge=0, le=999)
    route: NonEmptyStr
    summit: NonEmptyStr
    region: str | None = None
    climbers: list[AscentClimberPayload] = Field(default_factory=list[AscentClimberPayload])
    lead_climber: ClimberPayload | None = Field(default=None, alias="leadClimber")
    is_aborted: bool = Field(default=False, alias="isAborted")
    is_top_rope: bool = Field(default=False, alias="isTopRope")
    is_solo: bool = Field(default=False, alias="isSolo")
    is_without_support: bool = Field(default=False, alias="isWithoutSupport")
    notes: str | None = None

    _coerce_date = field_validator("date", mode="before")(_parse_date)
    _strip_names = field_validator("route", "summit", mode="before")(_strip)
    _normalize_optional = field_validator("region", "lead_climber", "notes", mode="before")(
        _blank_to_none
    )

    @field_validator("date")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @property
    def timestamp(self) -> datetime:
        """``date`` with ``number`` milliseconds added to order same-day ascents."""

        if self.number is None:
            return self.date
        return self.date + timedelta(milliseconds=self.number)


class GpsLocationPayload(SourceBaseModel):
    name: NonEmptyStr
    region: str | None = None
    gps_position: GpsPositionPayload = Field(alias="gpsPosition")

    _strip_name = field_validator("name", mode="before")(_strip)
    _normalize_region = field_validator("region", mode="before")(_blank_to_none)

    @field_validator("gps_position")
    @classmethod
    def _require_coordinates(cls, value: GpsPositionPayload) -> GpsPositionPayload:
        if value.lat is None or value.lng is None:
            raise ValueError("lat and lng are required")
        return value


# GeoJSON ----------------------------------------------------------------------


class GeoJsonPoint(SourceBaseModel):
    type: Literal["Point"]
    coordinates: list[float] = Field(min_length=2)

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


class GeoJsonFeature(SourceBaseModel):
    type: Literal["Feature"]
    geometry: GeoJsonPoint
    properties: dict[str, Any] = Field(default_factory=dict[str, Any])

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: object) -> object:
        return {} if value is None else value

    @property
    def name(self) -> str | None:
        name = self.properties.get("name")
        return name.strip() if isinstance(name, str) and name.strip() else None

    def to_gps_record(self) -> dict[str, object]:
        record: dict[str, object] = {
            "name": self.name,
            "gpsPosition": {"lat": self.geometry.lat, "lng": self.geometry.lng},
        }
        region = self.properties.get("region")
        if isinstance(region, str) and region.strip():
            record["region"] = region.strip()
        return record


class GeoJsonFeatureCollection(SourceBaseModel):
    type: Literal["FeatureCollection"]
    features: list[GeoJsonFeature]

