from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from gipfelsync.domain.model import Collection, MissingReferencePolicy
from gipfelsync.domain.reconciliation import (
    AscentParticipant,
    AscentRecord,
    ClimberName,
    ForeignKeyResolver,
    ResolutionError,
    RouteRecord,
    SummitRecord,
)
from tests.helpers.climbing import (
    make_climber,
    make_region,
    make_route,
    make_summit,
    seed,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from gipfelsync.adapters.sqlalchemy import SqlAlchemyUnitOfWork

KAY = ClimberName(first_name="Kay", last_name="Müller")
DAY = datetime(2023, 5, 1, tzinfo=UTC)


def test_summit_record_resolves_region_id(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    region = make_region("Bielatal")
    seed(sqlite_unit_of_work, region)

    with sqlite_unit_of_work() as uow:
        resolved = ForeignKeyResolver(uow.repositories).resolve(
            SummitRecord(name="Lokomotive", region="Bielatal", provided=frozenset({"name"}))
        )

    assert resolved.collection is Collection.SUMMITS
    assert resolved.document == {"name": "Lokomotive", "region_id": region.id}
    assert resolved.created == ()


def test_missing_region_rejects_summit(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow, pytest.raises(ResolutionError) as excinfo:
        ForeignKeyResolver(uow.repositories).resolve(
            SummitRecord(name="Lokomotive", region="Bielatal")
        )

    assert excinfo.value.kind is Collection.REGIONS
    assert excinfo.value.reference == "Bielatal"


def test_lookup_is_case_sensitive(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    seed(sqlite_unit_of_work, make_region("Bielatal"))

    with sqlite_unit_of_work() as uow, pytest.raises(ResolutionError):
        ForeignKeyResolver(uow.repositories).resolve_region("bielatal")


def test_missing_summit_rejects_route(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    seed(sqlite_unit_of_work, make_region())

    with sqlite_unit_of_work() as uow, pytest.raises(ResolutionError) as excinfo:
        ForeignKeyResolver(uow.repositories).resolve(
            RouteRecord(name="Talweg", summit="Lokomotive")
        )

    assert excinfo.value.kind is Collection.SUMMITS


def test_summit_name_in_two_regions_is_ambiguous(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    bielatal = make_region("Bielatal")
    rathen = make_region("Rathen")
    seed(
        sqlite_unit_of_work,
        bielatal,
        rathen,
        make_summit(bielatal, "Turm"),
        make_summit(rathen, "Turm"),
    )

    with sqlite_unit_of_work() as uow:
        resolver = ForeignKeyResolver(uow.repositories)
        with pytest.raises(ResolutionError, match="ambiguous"):
            resolver.resolve_summit("Turm")
        assert resolver.resolve_summit("Turm", "Rathen").region_id == rathen.id


def test_route_record_includes_only_provided_fields(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    region = make_region()
    summit = make_summit(region)
    seed(sqlite_unit_of_work, region, summit)

    with sqlite_unit_of_work() as uow:
        resolved = ForeignKeyResolver(uow.repositories).resolve(
            RouteRecord(
                name="Talweg",
                summit="Lokomotive",
                stars=2,
                provided=frozenset({"name", "summit", "stars"}),
            )
        )

    assert resolved.document == {"name": "Talweg", "summit_id": summit.id, "stars": 2}


def test_ascent_with_unknown_climber_is_rejected(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    region = make_region()
    summit = make_summit(region)
    seed(sqlite_unit_of_work, region, summit, make_route(summit))

    record = AscentRecord(
        date=DAY,
        route="Talweg",
        summit="Lokomotive",
        climbers=(AscentParticipant(climber=KAY),),
        provided=frozenset({"climbers"}),
    )
    with sqlite_unit_of_work() as uow, pytest.raises(ResolutionError) as excinfo:
        ForeignKeyResolver(uow.repositories).resolve(record)

    assert excinfo.value.kind is Collection.CLIMBERS
    assert excinfo.value.reference == "Kay Müller"


def test_ascent_document_resolves_route_and_climbers(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    region = make_region()
    summit = make_summit(region)
    route = make_route(summit)
    kay = make_climber("Kay", "Müller")
    seed(sqlite_unit_of_work, region, summit, route, kay)

    record = AscentRecord(
        date=DAY,
        route="Talweg",
        summit="Lokomotive",
        climbers=(AscentParticipant(climber=KAY, is_aborted=True),),
        lead_climber=KAY,
        notes="Regen",
        provided=frozenset({"climbers", "notes"}),
    )
    with sqlite_unit_of_work() as uow:
        resolved = ForeignKeyResolver(uow.repositories).resolve(record)

    assert resolved.document == {
        "date": DAY,
        "route_id": route.id,
        "lead_climber_id": kay.id,
        "climbers": [{"climber_id": kay.id, "is_aborted": True}],
        "notes": "Regen",
    }


def test_create_policy_adds_missing_region_and_climber(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    policies = {
        Collection.REGIONS: MissingReferencePolicy.CREATE,
        Collection.CLIMBERS: MissingReferencePolicy.CREATE,
    }
    with sqlite_unit_of_work() as uow:
        resolver = ForeignKeyResolver(uow.repositories, missing_references=policies)
        resolved = resolver.resolve(SummitRecord(name="Lokomotive", region="Bielatal"))
        climber = resolver.resolve_climber(KAY)
        uow.commit()

    assert resolved.created == (Collection.REGIONS,)
    with sqlite_unit_of_work() as uow:
        region = uow.repositories.regions.get_by_name("Bielatal")
        assert region is not None
        assert resolved.document["region_id"] == region.id
        assert uow.repositories.climbers.get_by_name("Kay", "Müller") is not None
    assert climber.full_name == "Kay Müller"


def test_create_policy_is_limited_to_top_of_hierarchy(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow, pytest.raises(ValueError, match="summits"):
        ForeignKeyResolver(
            uow.repositories,
            missing_references={Collection.SUMMITS: MissingReferencePolicy.CREATE},
        )
