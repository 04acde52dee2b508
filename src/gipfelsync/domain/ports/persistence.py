"""Ports for persisting climbing entities."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gipfelsync.domain.model import Ascent, Climber, LastChange, Region, Route, Summit

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID


class PersistenceError(RuntimeError):
    """A write for a single record could not be applied by the store."""


class StoreUnavailableError(RuntimeError):
    """The entity store cannot be reached at all; aborts the whole run."""


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class RegionRepository(Repository[Region], Protocol):
    def get_by_name(self, name: str) -> Region | None: ...


@runtime_checkable
class SummitRepository(Repository[Summit], Protocol):
    def find_by_name(self, name: str, *, region_id: UUID | None = None) -> Sequence[Summit]: ...

    def get_by_natural_key(self, name: str, region_id: UUID) -> Summit | None: ...

    def list_with_name_containing(self, fragment: str) -> Sequence[Summit]: ...


@runtime_checkable
class RouteRepository(Repository[Route], Protocol):
    def get_by_natural_key(self, name: str, summit_id: UUID) -> Route | None: ...


@runtime_checkable
class ClimberRepository(Repository[Climber], Protocol):
    def get_by_name(self, first_name: str, last_name: str) -> Climber | None: ...


@runtime_checkable
class AscentRepository(Repository[Ascent], Protocol):
    def get_by_natural_key(
        self,
        date: datetime,
        route_id: UUID,
        lead_climber_id: UUID | None,
    ) -> Ascent | None: ...


@runtime_checkable
class LastChangeRepository(Repository[LastChange], Protocol):
    def get(self, collection_name: str) -> LastChange | None: ...

    def list_all(self) -> Sequence[LastChange]: ...
