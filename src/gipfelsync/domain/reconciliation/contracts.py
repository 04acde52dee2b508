"""Shared reconciliation contract components.

This module holds:
- source payload aliases and source descriptors
- typed source records (references still textual) and the parser port producing them
- per-record results and the statistics aggregated from them
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gipfelsync.domain.model import Collection, MergeMode, Outcome

if TYPE_CHECKING:
    from datetime import datetime

    from gipfelsync.domain.model import Difficulty, GpsPosition
    from gipfelsync.domain.reconciliation.changes import ChangeSet


type RawRecord = Mapping[str, object]
type SourcePayload = Mapping[str, Sequence[object]]
type SourceData = Mapping[str, SourcePayload]


# Source descriptors -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DataSourceRef:
    """Ordinary source: its records for the collection go through the merge executor."""

    name: str

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class GpsLocationSourceRef:
    """GPS-only source: its summit records only feed the GPS merge policy."""

    dependency: str

    @property
    def name(self) -> str:
        return self.dependency

    @property
    def label(self) -> str:
        return f"{self.dependency} (GPS)"


type SourceRef = DataSourceRef | GpsLocationSourceRef


# Source records ---------------------------------------------------------------


class RecordValidationError(ValueError):
    """A raw record does not have the shape expected for its collection."""


@dataclass(frozen=True, slots=True)
class ClimberName:
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True, slots=True, kw_only=True)
class RegionRecord:
    name: str

    @property
    def identifier(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True, kw_only=True)
class SummitRecord:
    name: str
    region: str
    gps_position: GpsPosition | None = None
    teufelsturm_id: str | None = None
    provided: frozenset[str] = frozenset()

    @property
    def identifier(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True, kw_only=True)
class RouteRecord:
    name: str
    summit: str
    region: str | None = None
    difficulty: Difficulty | None = None
    unsecure: bool = False
    stars: int = 0
    teufelsturm_id: str | None = None
    teufelsturm_score: str | None = None
    provided: frozenset[str] = frozenset()

    @property
    def identifier(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True, kw_only=True)
class ClimberRecord:
    first_name: str
    last_name: str

    @property
    def identifier(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True, slots=True, kw_only=True)
class AscentParticipant:
    climber: ClimberName
    is_aborted: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class AscentRecord:
    date: datetime
    route: str
    summit: str
    region: str | None = None
    climbers: tuple[AscentParticipant, ...] = ()
    lead_climber: ClimberName | None = None
    is_aborted: bool = False
    is_top_rope: bool = False
    is_solo: bool = False
    is_without_support: bool = False
    notes: str | None = None
    provided: frozenset[str] = frozenset()

    @property
    def identifier(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True, slots=True, kw_only=True)
class GpsLocationRecord:
    name: str
    gps_position: GpsPosition
    region: str | None = None

    @property
    def identifier(self) -> str:
        return self.name


type SourceRecord = RegionRecord | SummitRecord | RouteRecord | ClimberRecord | AscentRecord


@runtime_checkable
class RecordParser(Protocol):
    """Turns loosely-typed source records into typed records.

    Both methods raise ``RecordValidationError`` for malformed input.
    """

    def parse(self, collection: Collection, raw: object) -> SourceRecord: ...

    def parse_gps_location(self, raw: object) -> GpsLocationRecord: ...


# Results ----------------------------------------------------------------------


@dataclass(slots=True, kw_only=True)
class MergeResult:
    """Terminal state of one record plus what it took to get there."""

    outcome: Outcome
    identifier: str | None = None
    changes: ChangeSet | None = None
    reason: str | None = None


@dataclass(slots=True)
class OperationCounts:
    inserted: int = 0
    updated: int = 0
    replaced: int = 0
    skipped: int = 0
    failed: int = 0

    def record(self, outcome: Outcome) -> None:
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    def merge(self, other: OperationCounts) -> None:
        self.inserted += other.inserted
        self.updated += other.updated
        self.replaced += other.replaced
        self.skipped += other.skipped
        self.failed += other.failed

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.replaced + self.skipped + self.failed

    @property
    def has_writes(self) -> bool:
        return self.inserted > 0 or self.updated > 0 or self.replaced > 0


@dataclass(slots=True)
class CollectionStats:
    collection: Collection
    counts: OperationCounts = field(default_factory=OperationCounts)
    sources: dict[str, OperationCounts] = field(default_factory=dict[str, OperationCounts])

    def add_source(self, label: str, counts: OperationCounts) -> None:
        existing = self.sources.setdefault(label, OperationCounts())
        existing.merge(counts)
        self.counts.merge(counts)


@dataclass(slots=True, kw_only=True)
class ReconciliationReport:
    mode: MergeMode
    database: str
    collections: dict[Collection, CollectionStats] = field(
        default_factory=dict[Collection, CollectionStats]
    )

    @property
    def totals(self) -> OperationCounts:
        totals = OperationCounts()
        for stats in self.collections.values():
            totals.merge(stats.counts)
        return totals

    @property
    def has_failures(self) -> bool:
        return self.totals.failed > 0
