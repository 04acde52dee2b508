"""Collection-level orchestration of a reconciliation run."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING

from gipfelsync.domain.model import COLLECTION_ORDER, Collection, utcnow
from gipfelsync.domain.reconciliation.contracts import (
    CollectionStats,
    DataSourceRef,
    GpsLocationSourceRef,
    OperationCounts,
    ReconciliationReport,
)
from gipfelsync.domain.reconciliation.merge import MergeExecutor
from gipfelsync.domain.reconciliation.report import log_collection_summary, log_report
from gipfelsync.domain.reconciliation.tracker import ChangeTracker

if TYPE_CHECKING:
    from datetime import datetime

    from gipfelsync.domain.model import MergeMode, MissingReferencePolicy
    from gipfelsync.domain.ports import ClimbingUnitOfWork
    from gipfelsync.domain.reconciliation.contracts import (
        RecordParser,
        SourceData,
        SourceRef,
    )
    from gipfelsync.domain.reconciliation.gps import GpsMergePolicy

type UnitOfWorkFactory = Callable[[], ClimbingUnitOfWork]

log = logging.getLogger(__name__)


def ordered_sources(collection: Collection, refs: Sequence[SourceRef]) -> list[SourceRef]:
    """Ordinary sources first, GPS merges afterwards; relative order is kept."""

    gps_refs = [ref for ref in refs if isinstance(ref, GpsLocationSourceRef)]
    if gps_refs and collection is not Collection.SUMMITS:
        raise ValueError(f"GPS location sources only apply to summits, not {collection.value}")
    return [ref for ref in refs if isinstance(ref, DataSourceRef)] + gps_refs


class CollectionOrchestrator:
    """Run every configured source into its collection, in dependency order.

    Each collection is processed in its own unit of work and committed when done, so a
    fatal store error leaves earlier collections committed.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        parser: RecordParser,
        mode: MergeMode,
        collections: Mapping[Collection, Sequence[SourceRef]],
        gps_policy: GpsMergePolicy,
        missing_references: Mapping[Collection, MissingReferencePolicy] | None = None,
        database_label: str = "",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._parser = parser
        self._mode = mode
        self._collections = {
            collection: ordered_sources(collection, refs)
            for collection, refs in collections.items()
        }
        self._gps_policy = gps_policy
        self._missing_references = dict(missing_references or {})
        self._database_label = database_label
        self._clock = clock

    def run(self, sources: SourceData) -> ReconciliationReport:
        """Reconcile ``sources`` into the store and return the aggregated statistics."""

        report = ReconciliationReport(mode=self._mode, database=self._database_label)
        log.info("Reconciling %s source(s) in %s mode", len(sources), self._mode.value)
        for collection in COLLECTION_ORDER:
            refs = self._collections.get(collection)
            if not refs:
                continue
            report.collections[collection] = self.process_collection(collection, refs, sources)
        log_report(report)
        return report

    def process_collection(
        self,
        collection: Collection,
        refs: Sequence[SourceRef],
        sources: SourceData,
    ) -> CollectionStats:
        log.info("Processing collection: %s", collection.value)
        stats = CollectionStats(collection=collection)

        with self._unit_of_work_factory() as uow:
            executor = MergeExecutor(
                uow,
                mode=self._mode,
                parser=self._parser,
                gps_policy=self._gps_policy,
                missing_references=self._missing_references,
                clock=self._clock,
            )
            for ref in refs:
                counts = self._process_source(executor, collection, ref, sources)
                stats.add_source(ref.label, counts)

            touched: set[str] = {created.value for created in executor.created_collections}
            if stats.counts.has_writes:
                touched.add(collection.value)
            tracker = ChangeTracker(uow.repositories.last_changes, clock=self._clock)
            tracker.touch(sorted(touched))
            uow.commit()

        log_collection_summary(stats)
        return stats

    def _process_source(
        self,
        executor: MergeExecutor,
        collection: Collection,
        ref: SourceRef,
        sources: SourceData,
    ) -> OperationCounts:
        counts = OperationCounts()
        payload = sources.get(ref.name)
        if payload is None:
            log.warning("No data found for source: %s", ref.name)
            return counts

        records = payload.get(collection.value, ())
        if isinstance(ref, GpsLocationSourceRef):
            log.info("Processing %s GPS locations from %s", len(records), ref.name)
            for raw in records:
                counts.record(executor.process_gps_location(raw).outcome)
        else:
            log.info(
                "Processing %s items from %s for %s",
                len(records),
                ref.name,
                collection.value,
            )
            for raw in records:
                counts.record(executor.process(collection, raw).outcome)

        log.info(
            "Source %s complete: inserted=%s, updated=%s, replaced=%s, skipped=%s, failed=%s",
            ref.label,
            counts.inserted,
            counts.updated,
            counts.replaced,
            counts.skipped,
            counts.failed,
        )
        return counts
