"""Backoff for transient store failures, built on tenacity."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
    wait_random,
)

from reconciler.domain.errors import TransientStoreError

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from reconciler.config.controller import RetryPolicy

log = logging.getLogger(__name__)


def build_retrying(
    policy: RetryPolicy,
    *,
    stop_event: threading.Event | None = None,
    logger: logging.Logger = log,
) -> Retrying:
    """Return a tenacity controller retrying ``TransientStoreError`` per ``policy``.

    Setting ``stop_event`` interrupts the backoff sleep and ends the retries; the
    last error is then re-raised.
    """

    stop = stop_after_attempt(policy.attempts)
    sleep: Callable[[float], object] = time.sleep
    if stop_event is not None:
        stop = stop | stop_when_event_set(stop_event)
        sleep = stop_event.wait

    return Retrying(
        stop=stop,
        wait=wait_exponential(multiplier=policy.backoff_factor, max=policy.max_backoff_wait)
        + wait_random(0, policy.backoff_jitter),
        retry=retry_if_exception_type(TransientStoreError),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
