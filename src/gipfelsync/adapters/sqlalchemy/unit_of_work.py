"""SQLAlchemy-backed unit of work for the climbing store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gipfelsync.adapters.sqlalchemy.mappings import start_mappers
from gipfelsync.adapters.sqlalchemy.migrations import upgrade_head
from gipfelsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyAscentRepository,
    SqlAlchemyClimberRepository,
    SqlAlchemyLastChangeRepository,
    SqlAlchemyRegionRepository,
    SqlAlchemyRouteRepository,
    SqlAlchemySummitRepository,
)
from gipfelsync.config import get_database_config
from gipfelsync.domain.ports import (
    ClimbingRepositories,
    PersistenceError,
    RepositoryCollection,
    StoreUnavailableError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call gipfelsync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _disable_driver_transactions(dbapi_connection: Any, _connection_record: Any) -> None:
    dbapi_connection.isolation_level = None


def _emit_begin(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


def enable_sqlite_transactions(engine: Engine) -> None:
    """Have SQLAlchemy emit BEGIN for pysqlite so savepoints nest in the outer transaction.

    Only connections opened after this call are affected.
    """

    if engine.dialect.name != "sqlite" or event.contains(engine, "begin", _emit_begin):
        return
    event.listen(engine, "connect", _disable_driver_transactions)
    event.listen(engine, "begin", _emit_begin)


def create_store_engine(database_uri: str) -> Engine:
    engine = create_engine(database_uri, future=True)
    enable_sqlite_transactions(engine)
    return engine


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, schema, and session factory.

    Connection failures while migrating surface as ``StoreUnavailableError``.
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is not None:
        enable_sqlite_transactions(engine)
    resolved_engine = engine or create_store_engine(database_uri or get_database_config().uri)
    start_mappers()
    try:
        upgrade_head(engine=resolved_engine)
    except OperationalError as exc:
        raise StoreUnavailableError(f"Cannot reach entity store: {exc}") from exc

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def _is_connection_failure(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, DisconnectionError | OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            if _is_connection_failure(exc):
                raise StoreUnavailableError(f"Entity store went away: {exc}") from exc
            raise

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Run one record's writes inside a nested transaction."""

        try:
            with self.session.begin_nested():
                yield
        except SQLAlchemyError as exc:
            if _is_connection_failure(exc):
                raise StoreUnavailableError(f"Entity store went away: {exc}") from exc
            raise PersistenceError(str(exc.orig if isinstance(exc, DBAPIError) else exc)) from exc

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[ClimbingRepositories]):
    """Unit of work over every climbing collection."""

    def _build_repositories(self, session: Session) -> ClimbingRepositories:
        return ClimbingRepositories(
            regions=SqlAlchemyRegionRepository(session),
            summits=SqlAlchemySummitRepository(session),
            routes=SqlAlchemyRouteRepository(session),
            climbers=SqlAlchemyClimberRepository(session),
            ascents=SqlAlchemyAscentRepository(session),
            last_changes=SqlAlchemyLastChangeRepository(session),
        )


if TYPE_CHECKING:
    from gipfelsync.domain.ports import ClimbingUnitOfWork

    _uow_check: ClimbingUnitOfWork = SqlAlchemyUnitOfWork()
