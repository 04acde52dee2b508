from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from gipfelsync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from gipfelsync.domain.model import Collection, MergeMode, Outcome, Summit
from gipfelsync.domain.ports import PersistenceError
from gipfelsync.domain.reconciliation import MergeExecutor
from tests.helpers.climbing import make_region, make_summit

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

    from gipfelsync.adapters.sources import PydanticRecordParser
    from gipfelsync.domain.reconciliation import GpsMergePolicy


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_unit_of_work_persists_entities(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    region = make_region()

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.regions.add(region)
        uow.repositories.summits.add(make_summit(region))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        stored = uow.repositories.summits.get_by_natural_key("Lokomotive", region.id)
        assert stored is not None
        assert stored.region_id == region.id


def test_unit_of_work_discards_uncommitted_work(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.regions.add(make_region("Rathen"))

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.regions.get_by_name("Rathen") is None


def test_savepoint_rolls_back_only_the_failing_record(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    region = make_region()

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.regions.add(region)
        with uow.savepoint():
            uow.repositories.summits.add(make_summit(region, "Lokomotive"))

        with pytest.raises(PersistenceError), uow.savepoint():
            uow.repositories.summits.add(Summit(name="Lokomotive", region_id=region.id))

        with uow.savepoint():
            uow.repositories.summits.add(make_summit(region, "Mönch"))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        assert len(uow.repositories.summits.find_by_name("Lokomotive")) == 1
        assert uow.repositories.summits.get_by_natural_key("Mönch", region.id) is not None


def test_repositories_require_an_open_unit_of_work(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_released_savepoints_stay_inside_the_outer_transaction(
    sqlite_engine: Engine,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        executor = MergeExecutor(uow, mode=MergeMode.UPDATE, parser=parser, gps_policy=gps_policy)
        result = executor.process(Collection.REGIONS, "Bielatal")
        assert result.outcome is Outcome.INSERTED
        uow.rollback()

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.regions.get_by_name("Bielatal") is None


def test_startup_makes_plain_sqlite_engines_transactional() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    startup(engine=engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        with uow.savepoint():
            uow.repositories.regions.add(make_region("Rathen"))
        uow.rollback()

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.regions.get_by_name("Rathen") is None
