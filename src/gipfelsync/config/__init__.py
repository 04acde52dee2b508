"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .reconciliation import (
    ReconciliationConfig,
    SourceConfig,
    SourceFormat,
    load_reconciliation_config,
    parse_reconciliation_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "ReconciliationConfig",
    "SourceConfig",
    "SourceFormat",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_storage_config",
    "load_reconciliation_config",
    "optional_env_var",
    "parse_reconciliation_config",
    "require_env_vars",
]
