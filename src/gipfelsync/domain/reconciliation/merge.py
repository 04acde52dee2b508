"""Per-record merge state machine.

unresolved -> resolved -> matched | unmatched -> inserted | updated | replaced | skipped | failed

Validation and resolution failures as well as record-level persistence errors
end in ``failed`` and never stop the batch. ``StoreUnavailableError`` propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from gipfelsync.domain.model import (
    Collection,
    GpsPosition,
    MergeMode,
    MissingReferencePolicy,
    Outcome,
    Summit,
    utcnow,
    valid_position,
)
from gipfelsync.domain.ports import PersistenceError
from gipfelsync.domain.reconciliation.changes import ChangeDetector
from gipfelsync.domain.reconciliation.contracts import MergeResult, RecordValidationError
from gipfelsync.domain.reconciliation.documents import (
    ENTITY_KINDS,
    apply_document,
    position_document,
    position_from_document,
    to_document,
)
from gipfelsync.domain.reconciliation.resolve import ForeignKeyResolver, ResolutionError

if TYPE_CHECKING:
    from datetime import datetime

    from gipfelsync.domain.model import ClimbingEntity
    from gipfelsync.domain.ports import ClimbingUnitOfWork
    from gipfelsync.domain.reconciliation.contracts import (
        GpsLocationRecord,
        RecordParser,
        SourceRecord,
    )
    from gipfelsync.domain.reconciliation.gps import GpsMergePolicy
    from gipfelsync.domain.reconciliation.resolve import ResolvedRecord

log = logging.getLogger(__name__)

GPS_FIELD = "gps_position"


def _singular(collection: Collection) -> str:
    return collection.value.removesuffix("s")


class MergeExecutor:
    """Apply one record at a time to the store under the configured merge mode."""

    def __init__(
        self,
        unit_of_work: ClimbingUnitOfWork,
        *,
        mode: MergeMode,
        parser: RecordParser,
        gps_policy: GpsMergePolicy,
        missing_references: Mapping[Collection, MissingReferencePolicy] | None = None,
        detector: ChangeDetector | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow = unit_of_work
        self._repositories = unit_of_work.repositories
        self._mode = mode
        self._parser = parser
        self._gps_policy = gps_policy
        self._detector = detector or ChangeDetector()
        self._clock = clock
        self._resolver = ForeignKeyResolver(
            self._repositories,
            missing_references=missing_references,
            clock=clock,
        )
        self.created_collections: set[Collection] = set()

    @property
    def mode(self) -> MergeMode:
        return self._mode

    # Ordinary records ---------------------------------------------------------

    def process(self, collection: Collection, raw: object) -> MergeResult:
        """Validate, resolve and merge one raw record of ``collection``."""

        try:
            record = self._parser.parse(collection, raw)
        except RecordValidationError as exc:
            log.warning("Invalid %s record: %s", _singular(collection), exc)
            return MergeResult(outcome=Outcome.FAILED, reason=str(exc))

        identifier = record.identifier
        try:
            with self._uow.savepoint():
                result, created = self._merge(record)
        except ResolutionError as exc:
            log.warning("Rejected %s %s: %s", _singular(collection), identifier, exc)
            return MergeResult(outcome=Outcome.FAILED, identifier=identifier, reason=str(exc))
        except PersistenceError as exc:
            log.warning("Failed to write %s %s: %s", _singular(collection), identifier, exc)
            return MergeResult(outcome=Outcome.FAILED, identifier=identifier, reason=str(exc))

        self.created_collections.update(created)
        return result

    def _merge(self, record: SourceRecord) -> tuple[MergeResult, tuple[Collection, ...]]:
        resolved = self._resolver.resolve(record)
        kind = ENTITY_KINDS[resolved.collection]
        existing = kind.find_existing(self._repositories, resolved.document)

        if existing is None:
            return self._insert(resolved), resolved.created
        if self._mode is MergeMode.INSERT:
            log.debug(
                "Exists, left untouched: %s %s",
                _singular(kind.collection),
                resolved.identifier,
            )
            result = MergeResult(outcome=Outcome.SKIPPED, identifier=resolved.identifier)
        elif self._mode is MergeMode.REPLACE:
            result = self._replace(existing, resolved)
        else:
            result = self._update(existing, resolved)
        return result, resolved.created

    def _insert(self, resolved: ResolvedRecord) -> MergeResult:
        kind = ENTITY_KINDS[resolved.collection]
        entity = kind.build(resolved.document, now=self._clock())
        kind.add(self._repositories, entity)
        log.debug("Inserted new %s: %s", _singular(kind.collection), resolved.identifier)
        return MergeResult(outcome=Outcome.INSERTED, identifier=resolved.identifier)

    def _replace(self, existing: ClimbingEntity, resolved: ResolvedRecord) -> MergeResult:
        kind = ENTITY_KINDS[resolved.collection]
        replacement = kind.replacement(resolved.document)
        if isinstance(existing, Summit):
            replacement[GPS_FIELD] = self._merged_position(
                existing,
                position_from_document(resolved.document.get(GPS_FIELD)),
            )
        apply_document(existing, replacement)
        existing.touch(self._clock())
        log.debug("Replaced %s: %s", _singular(kind.collection), resolved.identifier)
        return MergeResult(outcome=Outcome.REPLACED, identifier=resolved.identifier)

    def _update(self, existing: ClimbingEntity, resolved: ResolvedRecord) -> MergeResult:
        kind = ENTITY_KINDS[resolved.collection]
        stored = to_document(existing)
        change_set = self._detector.diff(stored, resolved.document, skip=(GPS_FIELD,))
        if isinstance(existing, Summit) and resolved.document.get(GPS_FIELD) is not None:
            current = valid_position(existing.gps_position)
            merged = self._merged_position(
                existing,
                position_from_document(resolved.document[GPS_FIELD]),
            )
            if merged != current:
                change_set.add(GPS_FIELD, position_document(current), position_document(merged))

        if not change_set.has_changes:
            log.debug("No changes for %s: %s", _singular(kind.collection), resolved.identifier)
            return MergeResult(outcome=Outcome.SKIPPED, identifier=resolved.identifier)

        apply_document(existing, change_set.updates())
        existing.touch(self._clock())
        log.debug(
            "Updated %s %s: %s",
            _singular(kind.collection),
            resolved.identifier,
            change_set.describe(),
        )
        return MergeResult(
            outcome=Outcome.UPDATED,
            identifier=resolved.identifier,
            changes=change_set,
        )

    def _merged_position(
        self,
        summit: Summit,
        candidate: GpsPosition | None,
    ) -> GpsPosition | None:
        """Position to store for ``summit``; a stored one survives unless the gate admits."""

        current = valid_position(summit.gps_position)
        if candidate is None:
            return current
        decision = self._gps_policy.evaluate(summit.name, current, candidate)
        return candidate if decision.accepted else current

    # GPS-only records ---------------------------------------------------------

    def process_gps_location(self, raw: object) -> MergeResult:
        """Merge one GPS-only record into the position of an existing summit."""

        try:
            record = self._parser.parse_gps_location(raw)
        except RecordValidationError as exc:
            log.warning("Invalid GPS location record: %s", exc)
            return MergeResult(outcome=Outcome.FAILED, reason=str(exc))

        try:
            with self._uow.savepoint():
                result = self._merge_gps_location(record)
        except ResolutionError as exc:
            log.warning("Summit not found for GPS update %s: %s", record.identifier, exc)
            return MergeResult(
                outcome=Outcome.FAILED,
                identifier=record.identifier,
                reason=str(exc),
            )
        except PersistenceError as exc:
            log.warning("Failed to write GPS position for %s: %s", record.identifier, exc)
            return MergeResult(
                outcome=Outcome.FAILED,
                identifier=record.identifier,
                reason=str(exc),
            )
        return result

    def _merge_gps_location(self, record: GpsLocationRecord) -> MergeResult:
        summit = self._resolver.resolve_summit(record.name, record.region)
        current = valid_position(summit.gps_position)
        identifier = record.identifier

        if self._mode is MergeMode.INSERT and current is not None:
            log.debug("GPS position already set for summit: %s", identifier)
            return MergeResult(outcome=Outcome.SKIPPED, identifier=identifier)

        decision = self._gps_policy.evaluate(summit.name, current, record.gps_position)
        if not decision.accepted:
            return MergeResult(
                outcome=Outcome.SKIPPED,
                identifier=identifier,
                reason=decision.reason,
            )
        if current == record.gps_position:
            log.debug("GPS position unchanged for summit: %s", identifier)
            return MergeResult(outcome=Outcome.SKIPPED, identifier=identifier)

        change_set = self._detector.diff(
            {GPS_FIELD: position_document(current)},
            {GPS_FIELD: position_document(record.gps_position)},
        )
        summit.gps_position = record.gps_position
        summit.touch(self._clock())
        log.debug("Updated GPS position for summit: %s", identifier)
        return MergeResult(outcome=Outcome.UPDATED, identifier=identifier, changes=change_set)
