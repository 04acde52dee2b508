"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class Collection(StrEnum):
    """Persistent entity collections, named as they appear in source payloads."""

    REGIONS = "regions"
    SUMMITS = "summits"
    ROUTES = "routes"
    CLIMBERS = "climbers"
    ASCENTS = "ascents"


# Dependency order: every collection only references collections listed before it.
COLLECTION_ORDER: Final[tuple[Collection, ...]] = (
    Collection.REGIONS,
    Collection.SUMMITS,
    Collection.ROUTES,
    Collection.CLIMBERS,
    Collection.ASCENTS,
)


class MergeMode(StrEnum):
    INSERT = "insert"
    REPLACE = "replace"
    UPDATE = "update"


class Outcome(StrEnum):
    """Terminal state of one record passing through the merge executor."""

    INSERTED = "inserted"
    UPDATED = "updated"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_write(self) -> bool:
        return self in {Outcome.INSERTED, Outcome.UPDATED, Outcome.REPLACED}


class MissingReferencePolicy(StrEnum):
    """What the resolver does when a top-of-hierarchy reference does not exist."""

    REJECT = "reject"
    CREATE = "create"
