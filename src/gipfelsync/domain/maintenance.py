"""Maintenance operations on the stored climbing data."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gipfelsync.domain.model import COLLECTION_ORDER, Collection, utcnow
from gipfelsync.domain.reconciliation.tracker import ChangeTracker

if TYPE_CHECKING:
    from datetime import datetime

    from gipfelsync.domain.model import LastChange
    from gipfelsync.domain.reconciliation.orchestrator import UnitOfWorkFactory

log = logging.getLogger(__name__)


def normalize_summit_name(name: str) -> str:
    """Turn inverted names like ``"Mönch, Großer"`` into ``"Großer Mönch"``.

    Only names with exactly two comma-separated parts are rewritten.
    """

    if "," not in name:
        return name
    parts = [part.strip() for part in name.split(",")]
    if len(parts) == 2:  # noqa: PLR2004
        return f"{parts[1]} {parts[0]}"
    return name


@dataclass(slots=True, kw_only=True)
class SummitRenameResult:
    renamed: int = 0
    skipped: int = 0


def normalize_summit_names(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    clock: Callable[[], datetime] = utcnow,
) -> SummitRenameResult:
    """Rename stored summits with inverted names and advance LastChange for summits."""

    result = SummitRenameResult()
    with unit_of_work_factory() as uow:
        summits = uow.repositories.summits
        for summit in summits.list_with_name_containing(","):
            new_name = normalize_summit_name(summit.name)
            if new_name == summit.name:
                log.warning("Skipping summit with unexpected format: %r", summit.name)
                result.skipped += 1
                continue
            clash = summits.get_by_natural_key(new_name, summit.region_id)
            if clash is not None:
                log.warning(
                    "Skipping summit %r: %r already exists in the same region",
                    summit.name,
                    new_name,
                )
                result.skipped += 1
                continue
            log.info("Renaming summit: %r -> %r", summit.name, new_name)
            summit.name = new_name
            summit.touch(clock())
            result.renamed += 1

        if result.renamed:
            ChangeTracker(uow.repositories.last_changes, clock=clock).advance(
                Collection.SUMMITS.value
            )
        uow.commit()

    log.info("Summit names normalised: renamed=%s, skipped=%s", result.renamed, result.skipped)
    return result


def touch_last_changes(
    unit_of_work_factory: UnitOfWorkFactory,
    collections: Iterable[str] | None = None,
    *,
    clock: Callable[[], datetime] = utcnow,
) -> list[LastChange]:
    """Seed or refresh LastChange markers (every collection when none are given)."""

    names = list(collections) if collections is not None else [c.value for c in COLLECTION_ORDER]
    with unit_of_work_factory() as uow:
        markers = ChangeTracker(uow.repositories.last_changes, clock=clock).touch(names)
        uow.commit()
    for marker in markers:
        log.info("LastChange for %s is %s", marker.collection_name, marker.last_modified)
    return markers
