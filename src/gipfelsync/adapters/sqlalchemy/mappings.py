"""SQLAlchemy mapping metadata for the climbing domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import composite, configure_mappers, relationship

from gipfelsync.domain.model import (
    Ascent,
    AscentClimber,
    Climber,
    Difficulty,
    GpsPosition,
    LastChange,
    Region,
    Route,
    Summit,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _bookkeeping_columns() -> list[Column[datetime]]:
    return [
        Column("created_at", UTCDateTime(), nullable=False),
        Column("updated_at", UTCDateTime(), nullable=False),
    ]


# Core tables -----------------------------------------------------------------

region_table = Table(
    "region",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    *_bookkeeping_columns(),
    UniqueConstraint("name"),
)

summit_table = Table(
    "summit",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column(
        "region_id",
        UUIDColumnType,
        ForeignKey("region.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("gps_lat", Float, nullable=True),
    Column("gps_lng", Float, nullable=True),
    Column("teufelsturm_id", String, nullable=True),
    *_bookkeeping_columns(),
    UniqueConstraint("name", "region_id"),
)

route_table = Table(
    "route",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column(
        "summit_id",
        UUIDColumnType,
        ForeignKey("summit.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("difficulty_jump", String, nullable=True),
    Column("difficulty_rp", String, nullable=True),
    Column("difficulty_normal", String, nullable=True),
    Column("difficulty_without_support", String, nullable=True),
    Column("unsecure", Boolean, nullable=False, default=False),
    Column("stars", Integer, nullable=False, default=0),
    Column("teufelsturm_id", String, nullable=True),
    Column("teufelsturm_score", String, nullable=True),
    *_bookkeeping_columns(),
    UniqueConstraint("name", "summit_id"),
)

climber_table = Table(
    "climber",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("first_name", String, nullable=False),
    Column("last_name", String, nullable=False),
    *_bookkeeping_columns(),
    UniqueConstraint("first_name", "last_name"),
)

ascent_table = Table(
    "ascent",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("date", UTCDateTime(), nullable=False, index=True),
    Column(
        "route_id",
        UUIDColumnType,
        ForeignKey("route.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "lead_climber_id",
        UUIDColumnType,
        ForeignKey("climber.id", ondelete="RESTRICT"),
        nullable=True,
    ),
    Column("is_aborted", Boolean, nullable=False, default=False),
    Column("is_top_rope", Boolean, nullable=False, default=False),
    Column("is_solo", Boolean, nullable=False, default=False),
    Column("is_without_support", Boolean, nullable=False, default=False),
    Column("notes", Text, nullable=True),
    *_bookkeeping_columns(),
    UniqueConstraint("date", "route_id", "lead_climber_id"),
)

ascent_climber_table = Table(
    "ascent_climber",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "ascent_id",
        UUIDColumnType,
        ForeignKey("ascent.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "climber_id",
        UUIDColumnType,
        ForeignKey("climber.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("is_aborted", Boolean, nullable=False, default=False),
    Column("position", Integer, nullable=False),
)

last_change_table = Table(
    "last_change",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("collection_name", String, nullable=False),
    Column("last_modified", UTCDateTime(), nullable=False),
    UniqueConstraint("collection_name"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Region, region_table)

    mapper_registry.map_imperatively(
        Summit,
        summit_table,
        properties={
            "gps_position": composite(
                GpsPosition,
                summit_table.c.gps_lat,
                summit_table.c.gps_lng,
            ),
        },
    )

    mapper_registry.map_imperatively(
        Route,
        route_table,
        properties={
            "difficulty": composite(
                Difficulty,
                route_table.c.difficulty_jump,
                route_table.c.difficulty_rp,
                route_table.c.difficulty_normal,
                route_table.c.difficulty_without_support,
            ),
        },
    )

    mapper_registry.map_imperatively(Climber, climber_table)

    mapper_registry.map_imperatively(
        AscentClimber,
        ascent_climber_table,
        properties={
            "_ascent_id": ascent_climber_table.c.ascent_id,
        },
    )

    mapper_registry.map_imperatively(
        Ascent,
        ascent_table,
        properties={
            "climbers": relationship(
                AscentClimber,
                order_by=ascent_climber_table.c.position,
                collection_class=ordering_list("position"),
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
        },
    )

    mapper_registry.map_imperatively(LastChange, last_change_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create tables without migrations (ad-hoc scripts and throwaway stores)."""

    start_mappers()
    mapper_registry.metadata.create_all(engine)
