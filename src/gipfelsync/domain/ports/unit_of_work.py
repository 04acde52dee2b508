"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from types import TracebackType

    from gipfelsync.domain.ports.persistence import (
        AscentRepository,
        ClimberRepository,
        LastChangeRepository,
        RegionRepository,
        RouteRepository,
        SummitRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def savepoint(self) -> AbstractContextManager[None]:
        """Scope one record's writes; failures roll back only that scope.

        Implementations raise ``PersistenceError`` for record-level store failures
        and ``StoreUnavailableError`` when the store itself is gone.
        """
        ...


@dataclass(slots=True)
class ClimbingRepositories(RepositoryCollection):
    """Repositories for every collection the reconciliation engine touches."""

    regions: RegionRepository
    summits: SummitRepository
    routes: RouteRepository
    climbers: ClimberRepository
    ascents: AscentRepository
    last_changes: LastChangeRepository


type ClimbingUnitOfWork = UnitOfWork[ClimbingRepositories]
