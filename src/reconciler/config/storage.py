"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_float, env_int, optional_env_var
from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "reconciler"
DEFAULT_DB_FILENAME: Final[str] = "reconciler.db"
DEFAULT_POOL_SIZE: Final[int] = 5
DEFAULT_POOL_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_STATEMENT_TIMEOUT_SECONDS: Final[float] = 10.0


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Store endpoint plus per-operation timeouts shared by every worker."""

    uri: str
    pool_size: int = DEFAULT_POOL_SIZE
    pool_timeout_seconds: float = DEFAULT_POOL_TIMEOUT_SECONDS
    statement_timeout_seconds: float | None = DEFAULT_STATEMENT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if not self.uri.strip():
            raise ConfigurationError("Database URI must not be blank")
        if self.pool_size < 1:
            raise ConfigurationError("Database pool size must be at least 1")
        if self.pool_timeout_seconds <= 0:
            raise ConfigurationError("Database pool timeout must be positive")
        if self.statement_timeout_seconds is not None and self.statement_timeout_seconds <= 0:
            raise ConfigurationError("Statement timeout must be positive when set")


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = optional_env_var("RECONCILER_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_database_config(
    *,
    uri: str | None = None,
    storage: StorageConfig | None = None,
) -> DatabaseConfig:
    """Resolve the store endpoint, preferring an explicit URI over the environment."""

    resolved_uri = uri or optional_env_var("DATABASE_URI") or optional_env_var("DATABASE_URL")
    if resolved_uri is None:
        storage_config = storage or get_storage_config()
        resolved_uri = storage_config.database_uri()

    statement_timeout = env_float(
        "RECONCILER_STATEMENT_TIMEOUT_SECONDS", DEFAULT_STATEMENT_TIMEOUT_SECONDS
    )
    return DatabaseConfig(
        uri=resolved_uri,
        pool_size=env_int("RECONCILER_POOL_SIZE", DEFAULT_POOL_SIZE),
        pool_timeout_seconds=env_float(
            "RECONCILER_POOL_TIMEOUT_SECONDS", DEFAULT_POOL_TIMEOUT_SECONDS
        ),
        statement_timeout_seconds=statement_timeout if statement_timeout > 0 else None,
    )
