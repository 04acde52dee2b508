"""Domain ports (repositories and units of work)."""

from __future__ import annotations

from gipfelsync.domain.ports.persistence import (
    AscentRepository,
    ClimberRepository,
    LastChangeRepository,
    PersistenceError,
    RegionRepository,
    Repository,
    RouteRepository,
    StoreUnavailableError,
    SummitRepository,
)
from gipfelsync.domain.ports.unit_of_work import (
    ClimbingRepositories,
    ClimbingUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AscentRepository",
    "ClimberRepository",
    "ClimbingRepositories",
    "ClimbingUnitOfWork",
    "LastChangeRepository",
    "PersistenceError",
    "RegionRepository",
    "Repository",
    "RepositoryCollection",
    "RouteRepository",
    "StoreUnavailableError",
    "SummitRepository",
    "UnitOfWork",
]
