"""Reconciliation run settings, read from a TOML file."""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Final, cast

from gipfelsync.domain.model import Collection, MergeMode, MissingReferencePolicy
from gipfelsync.domain.reconciliation import (
    CREATABLE_REFERENCES,
    DataSourceRef,
    GpsLocationSourceRef,
    GpsMergePolicy,
    SourceRef,
)

from .env import optional_env_var
from .errors import ConfigurationError, MissingConfigurationError

log = logging.getLogger(__name__)

CONFIG_ENV_VAR: Final[str] = "GIPFELSYNC_CONFIG"
MODE_ENV_VAR: Final[str] = "GIPFELSYNC_MODE"

DEFAULT_MODE: Final[MergeMode] = MergeMode.UPDATE
DEFAULT_CHANGE_DISTANCE_THRESHOLD: Final[float] = 100.0
DEFAULT_LOG_DISTANCE_THRESHOLD: Final[float] = 25.0

GPS_LOCATION_SOURCE_TYPE: Final[str] = "gpsLocation"


class SourceFormat(StrEnum):
    JSON = "json"
    GEOJSON = "geojson"


@dataclass(frozen=True, slots=True)
class SourceConfig:
    name: str
    path: Path
    format: SourceFormat = SourceFormat.JSON
    swap_coordinates: bool = False


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    mode: MergeMode = DEFAULT_MODE
    change_distance_threshold: float = DEFAULT_CHANGE_DISTANCE_THRESHOLD
    log_distance_threshold: float = DEFAULT_LOG_DISTANCE_THRESHOLD
    collections: Mapping[Collection, tuple[SourceRef, ...]] = field(
        default_factory=dict[Collection, tuple[SourceRef, ...]]
    )
    sources: Mapping[str, SourceConfig] = field(default_factory=dict[str, SourceConfig])
    missing_references: Mapping[Collection, MissingReferencePolicy] = field(
        default_factory=dict[Collection, MissingReferencePolicy]
    )

    def gps_policy(self) -> GpsMergePolicy:
        return GpsMergePolicy(
            change_distance_threshold=self.change_distance_threshold,
            log_distance_threshold=self.log_distance_threshold,
        )


def _enum_value[E: StrEnum](enum_cls: type[E], value: object, setting: str) -> E:
    try:
        return enum_cls(str(value))
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Invalid value for {setting}: {value!r} (expected one of {allowed})"
        ) from None


def _threshold(document: Mapping[str, Any], name: str, default: float) -> float:
    value = document.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value!r}")
    return float(value)


def _table(document: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = document.get(name, {})
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"[{name}] must be a table")
    return cast(Mapping[str, Any], value)


def _parse_sources(table: Mapping[str, Any], base_dir: Path) -> dict[str, SourceConfig]:
    sources: dict[str, SourceConfig] = {}
    for name, raw in table.items():
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"[sources.{name}] must be a table")
        settings = cast(Mapping[str, Any], raw)
        path_value = settings.get("path")
        if not isinstance(path_value, str) or not path_value.strip():
            raise ConfigurationError(f"[sources.{name}] needs a path")
        path = Path(path_value).expanduser()
        if not path.is_absolute():
            path = base_dir / path
        swap = settings.get("swap_coordinates", False)
        if not isinstance(swap, bool):
            raise ConfigurationError(f"[sources.{name}] swap_coordinates must be a boolean")
        sources[name] = SourceConfig(
            name=name,
            path=path,
            format=_enum_value(
                SourceFormat,
                settings.get("format", SourceFormat.JSON.value),
                f"sources.{name}.format",
            ),
            swap_coordinates=swap,
        )
    return sources


def _parse_source_ref(collection: Collection, entry: object) -> SourceRef:
    if isinstance(entry, str):
        return DataSourceRef(entry)
    if isinstance(entry, Mapping):
        settings = cast(Mapping[str, Any], entry)
        if settings.get("type") != GPS_LOCATION_SOURCE_TYPE:
            raise ConfigurationError(
                f"Unknown source type in collections.{collection.value}: {settings.get('type')!r}"
            )
        if collection is not Collection.SUMMITS:
            raise ConfigurationError(
                f"GPS location sources only apply to summits, not {collection.value}"
            )
        dependency = settings.get("dependency")
        if not isinstance(dependency, str) or not dependency:
            raise ConfigurationError("GPS location sources need a dependency")
        return GpsLocationSourceRef(dependency)
    raise ConfigurationError(f"Invalid source entry in collections.{collection.value}: {entry!r}")


def _parse_collections(
    table: Mapping[str, Any],
    sources: Mapping[str, SourceConfig],
) -> dict[Collection, tuple[SourceRef, ...]]:
    collections: dict[Collection, tuple[SourceRef, ...]] = {}
    for key, entries in table.items():
        collection = _enum_value(Collection, key, "collections")
        if not isinstance(entries, Sequence) or isinstance(entries, str):
            raise ConfigurationError(f"collections.{key} must be a list")
        refs = tuple(
            _parse_source_ref(collection, entry) for entry in cast(Sequence[object], entries)
        )
        unknown = sorted({ref.name for ref in refs if ref.name not in sources})
        if unknown:
            raise ConfigurationError(
                f"collections.{key} references unknown sources: {', '.join(unknown)}"
            )
        collections[collection] = refs
    return collections


def _parse_missing_references(
    table: Mapping[str, Any],
) -> dict[Collection, MissingReferencePolicy]:
    policies: dict[Collection, MissingReferencePolicy] = {}
    for key, value in table.items():
        collection = _enum_value(Collection, key, "missing_references")
        if collection not in CREATABLE_REFERENCES:
            raise ConfigurationError(
                f"missing_references cannot be configured for {collection.value}"
            )
        policies[collection] = _enum_value(
            MissingReferencePolicy, value, f"missing_references.{key}"
        )
    return policies


def parse_reconciliation_config(
    document: Mapping[str, Any],
    *,
    base_dir: Path,
    mode_override: str | None = None,
) -> ReconciliationConfig:
    """Build a ``ReconciliationConfig`` from an already-parsed TOML document.

    Relative source paths are resolved against ``base_dir``.
    """

    mode = _enum_value(MergeMode, mode_override or document.get("mode", DEFAULT_MODE), "mode")
    change = _threshold(document, "change_distance_threshold", DEFAULT_CHANGE_DISTANCE_THRESHOLD)
    log_threshold = _threshold(
        document, "log_distance_threshold", min(DEFAULT_LOG_DISTANCE_THRESHOLD, change)
    )
    if log_threshold > change:
        raise ConfigurationError(
            "log_distance_threshold must not exceed change_distance_threshold"
        )

    sources = _parse_sources(_table(document, "sources"), base_dir)
    return ReconciliationConfig(
        mode=mode,
        change_distance_threshold=change,
        log_distance_threshold=log_threshold,
        collections=_parse_collections(_table(document, "collections"), sources),
        sources=sources,
        missing_references=_parse_missing_references(_table(document, "missing_references")),
    )


def load_reconciliation_config(
    path: Path | str | None = None,
    *,
    mode_override: str | None = None,
) -> ReconciliationConfig:
    """Read the reconciliation TOML file.

    ``path`` falls back to ``GIPFELSYNC_CONFIG``; the mode falls back from
    ``mode_override`` to ``GIPFELSYNC_MODE`` to the file's ``mode`` setting.
    """

    if path is None:
        path = optional_env_var(CONFIG_ENV_VAR)
        if path is None:
            raise MissingConfigurationError(f"Missing configuration for: {CONFIG_ENV_VAR}")
    config_path = Path(path).expanduser()
    try:
        with config_path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {config_path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {exc}") from exc

    log.debug("Loaded reconciliation settings from %s", config_path)
    return parse_reconciliation_config(
        document,
        base_dir=config_path.resolve().parent,
        mode_override=mode_override or optional_env_var(MODE_ENV_VAR),
    )
