"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from gipfelsync.adapters.sqlalchemy.mappings import (
    ascent_table,
    climber_table,
    last_change_table,
    region_table,
    route_table,
    summit_table,
)
from gipfelsync.domain.model import Ascent, Climber, LastChange, Region, Route, Summit

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    """Shared session plumbing for the collection repositories."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)


class SqlAlchemyRegionRepository(SqlAlchemyRepository[Region]):
    def get_by_name(self, name: str) -> Region | None:
        stmt = select(Region).where(region_table.c.name == name)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemySummitRepository(SqlAlchemyRepository[Summit]):
    def find_by_name(self, name: str, *, region_id: UUID | None = None) -> Sequence[Summit]:
        stmt = select(Summit).where(summit_table.c.name == name)
        if region_id is not None:
            stmt = stmt.where(summit_table.c.region_id == region_id)
        return self.session.execute(stmt).scalars().all()

    def get_by_natural_key(self, name: str, region_id: UUID) -> Summit | None:
        stmt = (
            select(Summit)
            .where(summit_table.c.name == name)
            .where(summit_table.c.region_id == region_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_with_name_containing(self, fragment: str) -> Sequence[Summit]:
        # contains() escapes LIKE wildcards in the fragment
        stmt = (
            select(Summit)
            .where(summit_table.c.name.contains(fragment, autoescape=True))
            .order_by(summit_table.c.name)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyRouteRepository(SqlAlchemyRepository[Route]):
    def get_by_natural_key(self, name: str, summit_id: UUID) -> Route | None:
        stmt = (
            select(Route)
            .where(route_table.c.name == name)
            .where(route_table.c.summit_id == summit_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyClimberRepository(SqlAlchemyRepository[Climber]):
    def get_by_name(self, first_name: str, last_name: str) -> Climber | None:
        stmt = (
            select(Climber)
            .where(climber_table.c.first_name == first_name)
            .where(climber_table.c.last_name == last_name)
        )
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyAscentRepository(SqlAlchemyRepository[Ascent]):
    def get_by_natural_key(
        self,
        date: datetime,
        route_id: UUID,
        lead_climber_id: UUID | None,
    ) -> Ascent | None:
        stmt = (
            select(Ascent)
            .where(ascent_table.c.date == date)
            .where(ascent_table.c.route_id == route_id)
        )
        if lead_climber_id is None:
            stmt = stmt.where(ascent_table.c.lead_climber_id.is_(None))
        else:
            stmt = stmt.where(ascent_table.c.lead_climber_id == lead_climber_id)
        # unique constraint does not cover NULL leads; first match wins
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()


class SqlAlchemyLastChangeRepository(SqlAlchemyRepository[LastChange]):
    def get(self, collection_name: str) -> LastChange | None:
        stmt = select(LastChange).where(last_change_table.c.collection_name == collection_name)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_all(self) -> Sequence[LastChange]:
        stmt = select(LastChange).order_by(last_change_table.c.collection_name)
        return self.session.execute(stmt).scalars().all()
