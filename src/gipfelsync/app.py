"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from gipfelsync.adapters.sources import PydanticRecordParser, load_sources, referenced_sources
from gipfelsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from gipfelsync.config import DatabaseConfig, get_database_config, load_reconciliation_config
from gipfelsync.domain.maintenance import (
    SummitRenameResult,
    normalize_summit_names,
    touch_last_changes,
)
from gipfelsync.domain.reconciliation import CollectionOrchestrator

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from gipfelsync.config import ReconciliationConfig
    from gipfelsync.domain.model import LastChange
    from gipfelsync.domain.reconciliation import (
        ReconciliationReport,
        SourceData,
        UnitOfWorkFactory,
    )

log = getLogger(__name__)


def _database(database_uri: str | None) -> DatabaseConfig:
    return DatabaseConfig(uri=database_uri) if database_uri else get_database_config()


def _ensure_started(database: DatabaseConfig) -> None:
    if not is_started():
        startup(database_uri=database.uri)


def reconcile(
    *,
    config_path: Path | str | None = None,
    mode: str | None = None,
    database_uri: str | None = None,
    config: ReconciliationConfig | None = None,
    sources: SourceData | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ReconciliationReport:
    """Reconcile every configured source into the entity store."""

    settings = config or load_reconciliation_config(config_path, mode_override=mode)
    database = _database(database_uri)
    if unit_of_work_factory is None:
        _ensure_started(database)
    effective_uow = unit_of_work_factory or SqlAlchemyUnitOfWork

    if sources is None:
        names = [ref.name for refs in settings.collections.values() for ref in refs]
        sources = load_sources(referenced_sources(settings.sources, names))

    log.info(
        "Starting reconciliation: mode=%s, database=%s, collections=%s",
        settings.mode.value,
        database.label,
        ", ".join(collection.value for collection in settings.collections) or "none",
    )
    orchestrator = CollectionOrchestrator(
        unit_of_work_factory=effective_uow,
        parser=PydanticRecordParser(),
        mode=settings.mode,
        collections=settings.collections,
        gps_policy=settings.gps_policy(),
        missing_references=settings.missing_references,
        database_label=database.label,
    )
    report = orchestrator.run(sources)

    totals = report.totals
    log.info(
        "Finished reconciliation: inserted=%s, updated=%s, replaced=%s, skipped=%s, failed=%s",
        totals.inserted,
        totals.updated,
        totals.replaced,
        totals.skipped,
        totals.failed,
    )
    return report


def fix_summit_names(
    *,
    database_uri: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SummitRenameResult:
    """Rewrite inverted summit names (``"Mönch, Großer"``) in the store."""

    if unit_of_work_factory is None:
        _ensure_started(_database(database_uri))
    return normalize_summit_names(unit_of_work_factory or SqlAlchemyUnitOfWork)


def touch_last_change(
    collections: Sequence[str] | None = None,
    *,
    database_uri: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[LastChange]:
    """Set LastChange markers for ``collections`` (every collection when empty)."""

    if unit_of_work_factory is None:
        _ensure_started(_database(database_uri))
    return touch_last_changes(
        unit_of_work_factory or SqlAlchemyUnitOfWork,
        collections or None,
    )
