"""File-based source adapters: loaders plus the pydantic record parser."""

from __future__ import annotations

from .loader import (
    SourceLoadError,
    load_source,
    load_sources,
    parse_geojson_payload,
    parse_json_payload,
    referenced_sources,
    swap_coordinates,
)
from .translator import PydanticRecordParser

__all__ = [
    "PydanticRecordParser",
    "SourceLoadError",
    "load_source",
    "load_sources",
    "parse_geojson_payload",
    "parse_json_payload",
    "referenced_sources",
    "swap_coordinates",
]
