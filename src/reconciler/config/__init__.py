"""Application configuration helpers."""

from __future__ import annotations

from .controller import (
    ControllerConfig,
    CursorPolicy,
    RetryPolicy,
    get_controller_config,
    get_retry_policy,
    parse_cursor_policy,
)
from .errors import ConfigurationError
from .logging import configure_logging, parse_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "ControllerConfig",
    "CursorPolicy",
    "DatabaseConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_controller_config",
    "get_database_config",
    "get_retry_policy",
    "get_storage_config",
    "parse_cursor_policy",
    "parse_log_level",
]
