"""Load source files into payloads keyed by collection name."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from pydantic import ValidationError

from gipfelsync.config import SourceFormat
from gipfelsync.domain.model import Collection

from .schema import GeoJsonFeatureCollection

if TYPE_CHECKING:
    from gipfelsync.config import SourceConfig
    from gipfelsync.domain.reconciliation import SourceData, SourcePayload

log = getLogger(__name__)

GPS_KEY = "gpsPosition"
COLLECTION_KEYS = frozenset(collection.value for collection in Collection)


class SourceLoadError(RuntimeError):
    """A source file is missing or not shaped like a source payload."""


def _read_json(config: SourceConfig) -> object:
    try:
        with config.path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise SourceLoadError(f"Source file for {config.name} not found: {config.path}") from exc
    except json.JSONDecodeError as exc:
        raise SourceLoadError(f"Invalid JSON in {config.path}: {exc}") from exc


def parse_json_payload(name: str, document: object) -> dict[str, list[object]]:
    """Top-level object keyed by collection name, each holding a list of records."""

    if not isinstance(document, Mapping):
        raise SourceLoadError(f"Source {name} must contain an object keyed by collection")
    payload: dict[str, list[object]] = {}
    for key, records in cast(Mapping[str, Any], document).items():
        if key not in COLLECTION_KEYS:
            log.debug("Ignoring unknown key %r in source %s", key, name)
            continue
        if not isinstance(records, list):
            raise SourceLoadError(f"Source {name}: {key} must be a list of records")
        payload[key] = cast(list[object], records)
    return payload


def parse_geojson_payload(name: str, document: object) -> dict[str, list[object]]:
    """Point features become GPS records for summits."""

    try:
        collection = GeoJsonFeatureCollection.model_validate(document)
    except ValidationError as exc:
        raise SourceLoadError(f"Source {name} is not a GeoJSON FeatureCollection: {exc}") from exc
    records: list[object] = [feature.to_gps_record() for feature in collection.features]
    return {Collection.SUMMITS.value: records}


def swap_coordinates(records: Iterable[object]) -> list[object]:
    """Swap ``lat``/``lng`` of every ``gpsPosition``; other records pass through."""

    swapped: list[object] = []
    for record in records:
        if isinstance(record, Mapping) and isinstance(record.get(GPS_KEY), Mapping):
            data = dict(cast(Mapping[str, Any], record))
            position = cast(Mapping[str, Any], data[GPS_KEY])
            data[GPS_KEY] = {**position, "lat": position.get("lng"), "lng": position.get("lat")}
            swapped.append(data)
        else:
            swapped.append(record)
    return swapped


def load_source(config: SourceConfig) -> SourcePayload:
    document = _read_json(config)
    if config.format is SourceFormat.GEOJSON:
        payload = parse_geojson_payload(config.name, document)
    else:
        payload = parse_json_payload(config.name, document)
    if config.swap_coordinates:
        payload = {key: swap_coordinates(records) for key, records in payload.items()}
    log.info(
        "Loaded source %s from %s: %s",
        config.name,
        config.path,
        ", ".join(f"{len(records)} {key}" for key, records in payload.items()) or "no records",
    )
    return payload


def load_sources(configs: Iterable[SourceConfig]) -> SourceData:
    return {config.name: load_source(config) for config in configs}


def referenced_sources(
    configs: Mapping[str, SourceConfig],
    names: Iterable[str],
) -> Sequence[SourceConfig]:
    """The source configs named by ``names`` in first-use order, without duplicates."""

    seen: dict[str, SourceConfig] = {}
    for name in names:
        if name not in seen:
            seen[name] = configs[name]
    return list(seen.values())
