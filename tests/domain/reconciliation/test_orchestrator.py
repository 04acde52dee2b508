from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from gipfelsync.adapters.sqlalchemy import SqlAlchemyUnitOfWork
from gipfelsync.adapters.sqlalchemy.repositories import SqlAlchemyRegionRepository
from gipfelsync.domain.model import (
    COLLECTION_ORDER,
    Collection,
    GpsPosition,
    MergeMode,
    Region,
    valid_position,
)
from gipfelsync.domain.ports import StoreUnavailableError
from gipfelsync.domain.reconciliation import (
    CollectionOrchestrator,
    DataSourceRef,
    GpsLocationSourceRef,
)
from gipfelsync.domain.reconciliation.orchestrator import ordered_sources
from tests.helpers.climbing import FixedClock, make_region, make_summit, seed

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from datetime import datetime

    from gipfelsync.adapters.sources import PydanticRecordParser
    from gipfelsync.domain.reconciliation import GpsMergePolicy, SourceData, SourceRef

type UowFactory = Callable[[], SqlAlchemyUnitOfWork]

TEUFELSTURM: SourceData = {
    "teufelsturm": {
        "regions": ["Bielatal"],
        "summits": [{"name": "Lokomotive", "region": "Bielatal"}],
        "routes": [
            {
                "name": "Talweg",
                "summit": "Lokomotive",
                "difficulty": {"normal": "III"},
                "stars": 1,
            }
        ],
        "climbers": ["Kay Müller", {"firstName": "Anna", "lastName": "Schmidt"}],
        "ascents": [
            {
                "date": "2023-05-01",
                "number": 1,
                "route": "Talweg",
                "summit": "Lokomotive",
                "climbers": ["Kay Müller", "Anna Schmidt"],
                "leadClimber": "Kay Müller",
            }
        ],
    }
}

ALL_FROM_TEUFELSTURM: Mapping[Collection, Sequence[SourceRef]] = {
    collection: (DataSourceRef("teufelsturm"),) for collection in Collection
}


def _orchestrator(
    factory: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
    *,
    mode: MergeMode,
    collections: Mapping[Collection, Sequence[SourceRef]],
    clock: FixedClock | None = None,
) -> CollectionOrchestrator:
    return CollectionOrchestrator(
        unit_of_work_factory=factory,
        parser=parser,
        mode=mode,
        collections=collections,
        gps_policy=gps_policy,
        database_label="sqlite://",
        clock=clock or FixedClock(),
    )


def _last_changes(factory: UowFactory) -> dict[str, datetime]:
    with factory() as uow:
        return {
            marker.collection_name: marker.last_modified
            for marker in uow.repositories.last_changes.list_all()
        }


def test_gps_source_sets_position_once_in_insert_mode(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    region = make_region("Bielatal")
    seed(sqlite_unit_of_work, region, make_summit(region, "Lokomotive"))
    sources: SourceData = {
        "osm": {"summits": [{"name": "Lokomotive", "gpsPosition": {"lat": 50.91, "lng": 14.02}}]}
    }
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.INSERT,
        collections={Collection.SUMMITS: (GpsLocationSourceRef("osm"),)},
    )

    first = orchestrator.run(sources)
    second = orchestrator.run(sources)

    assert first.collections[Collection.SUMMITS].sources["osm (GPS)"].updated == 1
    assert second.collections[Collection.SUMMITS].sources["osm (GPS)"].skipped == 1
    assert second.totals.total == 1
    with sqlite_unit_of_work() as uow:
        summit = uow.repositories.summits.get_by_natural_key("Lokomotive", region.id)
        assert summit is not None
        assert valid_position(summit.gps_position) == GpsPosition(lat=50.91, lng=14.02)


def test_full_run_inserts_everything_and_rerun_is_idempotent(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.UPDATE,
        collections=ALL_FROM_TEUFELSTURM,
    )

    first = orchestrator.run(TEUFELSTURM)
    markers_after_first = _last_changes(sqlite_unit_of_work)
    second = orchestrator.run(TEUFELSTURM)

    assert list(first.collections) == list(Collection)
    assert first.totals.inserted == 6
    assert first.totals.failed == 0
    assert second.totals.inserted == 0
    assert second.totals.skipped == 6
    assert not second.totals.has_writes
    assert set(markers_after_first) == {collection.value for collection in Collection}
    assert _last_changes(sqlite_unit_of_work) == markers_after_first


def test_same_summit_from_two_sources_is_stored_once(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    sources: SourceData = {
        "teufelsturm": {
            "regions": ["Bielatal"],
            "summits": [{"name": "Lokomotive", "region": "Bielatal"}],
        },
        "manual": {"summits": [{"name": "Lokomotive", "region": "Bielatal"}]},
    }
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.INSERT,
        collections={
            Collection.REGIONS: (DataSourceRef("teufelsturm"),),
            Collection.SUMMITS: (DataSourceRef("teufelsturm"), DataSourceRef("manual")),
        },
    )

    report = orchestrator.run(sources)

    summits = report.collections[Collection.SUMMITS]
    assert summits.sources["teufelsturm"].inserted == 1
    assert summits.sources["manual"].skipped == 1
    assert summits.counts.total == 2
    with sqlite_unit_of_work() as uow:
        assert len(uow.repositories.summits.find_by_name("Lokomotive")) == 1


def test_last_change_only_advances_for_collections_with_writes(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    clock = FixedClock()
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.UPDATE,
        collections={
            Collection.REGIONS: (DataSourceRef("teufelsturm"),),
            Collection.SUMMITS: (DataSourceRef("teufelsturm"),),
        },
        clock=clock,
    )
    orchestrator.run(TEUFELSTURM)
    before = _last_changes(sqlite_unit_of_work)

    changed: SourceData = {
        "teufelsturm": {
            "regions": ["Bielatal"],
            "summits": [{"name": "Lokomotive", "region": "Bielatal", "teufelsturmId": "42"}],
        }
    }
    orchestrator.run(changed)
    after = _last_changes(sqlite_unit_of_work)

    assert after["regions"] == before["regions"]
    assert after["summits"] > before["summits"]


def test_ordinary_sources_run_before_gps_sources(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    sources: SourceData = {
        "teufelsturm": {
            "regions": ["Bielatal"],
            "summits": [{"name": "Lokomotive", "region": "Bielatal"}],
        },
        "osm": {"summits": [{"name": "Lokomotive", "gpsPosition": {"lat": 50.91, "lng": 14.02}}]},
    }
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.UPDATE,
        collections={
            Collection.REGIONS: (DataSourceRef("teufelsturm"),),
            Collection.SUMMITS: (GpsLocationSourceRef("osm"), DataSourceRef("teufelsturm")),
        },
    )

    report = orchestrator.run(sources)

    summits = report.collections[Collection.SUMMITS]
    assert list(summits.sources) == ["teufelsturm", "osm (GPS)"]
    assert summits.sources["teufelsturm"].inserted == 1
    assert summits.sources["osm (GPS)"].updated == 1


def test_missing_source_payload_counts_nothing(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
    caplog: pytest.LogCaptureFixture,
) -> None:
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.UPDATE,
        collections={Collection.REGIONS: (DataSourceRef("absent"),)},
    )

    with caplog.at_level(logging.WARNING):
        report = orchestrator.run({})

    assert report.collections[Collection.REGIONS].sources["absent"].total == 0
    assert "No data found for source: absent" in caplog.text
    assert _last_changes(sqlite_unit_of_work) == {}


def test_failed_records_are_counted_per_source(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    sources: SourceData = {
        "routes": {
            "routes": [
                {"name": "Talweg", "summit": "Unbekannt"},
                {"name": "Talweg"},
            ]
        }
    }
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.UPDATE,
        collections={Collection.ROUTES: (DataSourceRef("routes"),)},
    )

    report = orchestrator.run(sources)

    assert report.collections[Collection.ROUTES].counts.failed == 2
    assert report.has_failures


def test_gps_sources_are_only_allowed_for_summits() -> None:
    with pytest.raises(ValueError, match="routes"):
        ordered_sources(Collection.ROUTES, [GpsLocationSourceRef("osm")])

    refs = ordered_sources(
        Collection.SUMMITS,
        [GpsLocationSourceRef("osm"), DataSourceRef("a"), DataSourceRef("b")],
    )
    assert [ref.label for ref in refs] == ["a", "b", "osm (GPS)"]


def test_duplicate_key_write_fails_only_that_record(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seed(sqlite_unit_of_work, make_region("Bielatal"))

    def never_found(self: SqlAlchemyRegionRepository, name: str) -> Region | None:
        return None

    monkeypatch.setattr(SqlAlchemyRegionRepository, "get_by_name", never_found)
    orchestrator = _orchestrator(
        sqlite_unit_of_work,
        parser,
        gps_policy,
        mode=MergeMode.INSERT,
        collections={Collection.REGIONS: (DataSourceRef("teufelsturm"),)},
    )

    report = orchestrator.run({"teufelsturm": {"regions": ["Bielatal", "Rathen"]}})
    monkeypatch.undo()

    counts = report.collections[Collection.REGIONS].sources["teufelsturm"]
    assert (counts.failed, counts.inserted) == (1, 1)
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.regions.get_by_name("Rathen") is not None
    assert set(_last_changes(sqlite_unit_of_work)) == {"regions"}


class _StoreLostOnCommit(SqlAlchemyUnitOfWork):
    def commit(self) -> None:
        raise StoreUnavailableError("Entity store went away: disk I/O error")


def test_store_loss_aborts_run_and_keeps_earlier_collections(
    sqlite_unit_of_work: UowFactory,
    parser: PydanticRecordParser,
    gps_policy: GpsMergePolicy,
) -> None:
    opened: list[Collection] = []

    def factory() -> SqlAlchemyUnitOfWork:
        opened.append(COLLECTION_ORDER[len(opened)])
        if len(opened) == 2:
            return _StoreLostOnCommit()
        return sqlite_unit_of_work()

    orchestrator = _orchestrator(
        factory,
        parser,
        gps_policy,
        mode=MergeMode.UPDATE,
        collections=ALL_FROM_TEUFELSTURM,
    )

    with pytest.raises(StoreUnavailableError):
        orchestrator.run(TEUFELSTURM)

    assert opened == [Collection.REGIONS, Collection.SUMMITS]
    with sqlite_unit_of_work() as uow:
        region = uow.repositories.regions.get_by_name("Bielatal")
        assert region is not None
        assert not uow.repositories.summits.find_by_name("Lokomotive")
    assert set(_last_changes(sqlite_unit_of_work)) == {"regions"}
