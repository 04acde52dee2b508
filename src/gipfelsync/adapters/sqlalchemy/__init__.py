"""SQLAlchemy adapter package for gipfelsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAscentRepository,
    SqlAlchemyClimberRepository,
    SqlAlchemyLastChangeRepository,
    SqlAlchemyRegionRepository,
    SqlAlchemyRouteRepository,
    SqlAlchemySummitRepository,
)
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    create_store_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAscentRepository",
    "SqlAlchemyClimberRepository",
    "SqlAlchemyLastChangeRepository",
    "SqlAlchemyRegionRepository",
    "SqlAlchemyRouteRepository",
    "SqlAlchemySummitRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "create_all_tables",
    "create_store_engine",
    "mapper_registry",
    "start_mappers",
    "shutdown",
    "startup",
]
