"""Reconciliation engine: resolve, detect changes, gate GPS moves, merge, track."""

from __future__ import annotations

from .changes import ChangeDetector, ChangeSet, FieldChange, deep_equal
from .contracts import (
    AscentParticipant,
    AscentRecord,
    ClimberName,
    ClimberRecord,
    CollectionStats,
    DataSourceRef,
    GpsLocationRecord,
    GpsLocationSourceRef,
    MergeResult,
    OperationCounts,
    RawRecord,
    ReconciliationReport,
    RecordParser,
    RecordValidationError,
    RegionRecord,
    RouteRecord,
    SourceData,
    SourcePayload,
    SourceRecord,
    SourceRef,
    SummitRecord,
)
from .gps import EARTH_RADIUS_METERS, GpsDecision, GpsMergePolicy, haversine_distance
from .merge import MergeExecutor
from .orchestrator import CollectionOrchestrator, UnitOfWorkFactory
from .report import render_collection_summary, render_report
from .resolve import (
    CREATABLE_REFERENCES,
    ForeignKeyResolver,
    ResolutionError,
    ResolvedRecord,
)
from .tracker import ChangeTracker

__all__ = [
    "CREATABLE_REFERENCES",
    "EARTH_RADIUS_METERS",
    "AscentParticipant",
    "AscentRecord",
    "ChangeDetector",
    "ChangeSet",
    "ChangeTracker",
    "ClimberName",
    "ClimberRecord",
    "CollectionOrchestrator",
    "CollectionStats",
    "DataSourceRef",
    "FieldChange",
    "ForeignKeyResolver",
    "GpsDecision",
    "GpsLocationRecord",
    "GpsLocationSourceRef",
    "GpsMergePolicy",
    "MergeExecutor",
    "MergeResult",
    "OperationCounts",
    "RawRecord",
    "ReconciliationReport",
    "RecordParser",
    "RecordValidationError",
    "RegionRecord",
    "ResolutionError",
    "ResolvedRecord",
    "RouteRecord",
    "SourceData",
    "SourcePayload",
    "SourceRecord",
    "SourceRef",
    "SummitRecord",
    "UnitOfWorkFactory",
    "deep_equal",
    "haversine_distance",
    "render_collection_summary",
    "render_report",
]
