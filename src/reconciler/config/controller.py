"""Controller loop tuning values."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from .env import env_bool, env_float, env_int, optional_env_var
from .errors import ConfigurationError

DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 5.0
DEFAULT_MAX_WORKERS: Final[int] = 4
DEFAULT_BATCH_SIZE: Final[int] = 500


class CursorPolicy(StrEnum):
    """How the cursor treats owners that failed during a tick."""

    # advance to the batch high water mark, re-dispatch failures from a retry queue
    RETRY_QUEUE = "retry-queue"
    # never advance past the earliest failed owner, let the detector surface it again
    HOLD_BACK = "hold-back"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Capped exponential backoff applied to transient store failures."""

    attempts: int = 4
    backoff_factor: float = 0.5
    max_backoff_wait: float = 10.0
    backoff_jitter: float = 0.5

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ConfigurationError("Retry attempts must be at least 1")
        if self.backoff_factor < 0 or self.max_backoff_wait < 0 or self.backoff_jitter < 0:
            raise ConfigurationError("Retry backoff values must be non-negative")


@dataclass(slots=True, frozen=True)
class ControllerConfig:
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS
    batch_size: int | None = DEFAULT_BATCH_SIZE
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    cursor_policy: CursorPolicy = CursorPolicy.RETRY_QUEUE
    resync_every_ticks: int = 0
    audit_inconsistencies: bool = True

    def __post_init__(self) -> None:
        if self.poll_interval_seconds < 0:
            raise ConfigurationError("Poll interval must be non-negative")
        if self.max_workers < 1:
            raise ConfigurationError("Worker pool size must be at least 1")
        if self.batch_size is not None and self.batch_size < 1:
            raise ConfigurationError("Batch size must be positive (or unset for no limit)")
        if self.resync_every_ticks < 0:
            raise ConfigurationError("Resync interval must be non-negative")


def parse_cursor_policy(value: str) -> CursorPolicy:
    try:
        return CursorPolicy(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in CursorPolicy)
        raise ConfigurationError(
            f"Unknown cursor policy {value!r}; expected one of: {choices}"
        ) from exc


def get_retry_policy() -> RetryPolicy:
    defaults = RetryPolicy()
    return RetryPolicy(
        attempts=env_int("RECONCILER_RETRY_ATTEMPTS", defaults.attempts),
        backoff_factor=env_float("RECONCILER_RETRY_BACKOFF_FACTOR", defaults.backoff_factor),
        max_backoff_wait=env_float(
            "RECONCILER_RETRY_MAX_BACKOFF_SECONDS", defaults.max_backoff_wait
        ),
        backoff_jitter=env_float("RECONCILER_RETRY_JITTER_SECONDS", defaults.backoff_jitter),
    )


def get_controller_config() -> ControllerConfig:
    """Load controller tuning from ``RECONCILER_*`` environment variables."""

    batch_size = env_int("RECONCILER_BATCH_SIZE", DEFAULT_BATCH_SIZE)
    cursor_policy = optional_env_var("RECONCILER_CURSOR_POLICY")
    return ControllerConfig(
        poll_interval_seconds=env_float(
            "RECONCILER_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
        ),
        max_workers=env_int("RECONCILER_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        batch_size=batch_size if batch_size > 0 else None,
        retry=get_retry_policy(),
        cursor_policy=(
            parse_cursor_policy(cursor_policy) if cursor_policy else CursorPolicy.RETRY_QUEUE
        ),
        resync_every_ticks=env_int("RECONCILER_RESYNC_EVERY_TICKS", 0),
        audit_inconsistencies=env_bool("RECONCILER_AUDIT_INCONSISTENCIES", True),  # noqa: FBT003
    )
