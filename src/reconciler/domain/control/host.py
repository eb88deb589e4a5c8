"""Run several controller loops side by side and stop them together."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .loop import ControllerLoop

log = logging.getLogger(__name__)


class ControllerHost:
    """Own a set of controller loops, each running on its own thread.

    All loops share one stop event, so ``cancel_all`` winds every loop down
    after its current tick.
    """

    def __init__(self, *, stop_event: threading.Event | None = None) -> None:
        self.stop_event = stop_event or threading.Event()
        self._loops: list[ControllerLoop[Any, Any]] = []
        self._threads: list[threading.Thread] = []
        self._errors: dict[str, BaseException] = {}
        self._lock = threading.Lock()

    @property
    def loops(self) -> tuple[ControllerLoop[Any, Any], ...]:
        return tuple(self._loops)

    @property
    def errors(self) -> dict[str, BaseException]:
        with self._lock:
            return dict(self._errors)

    def add_controller(self, loop: ControllerLoop[Any, Any]) -> None:
        if self._threads:
            raise RuntimeError("Controllers must be added before the host is started")
        if loop.stop_event is not self.stop_event:
            raise ValueError(f"Loop {loop.name!r} does not share the host stop event")
        self._loops.append(loop)

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("Controller host already started")
        for loop in self._loops:
            thread = threading.Thread(
                target=self._run_loop, args=(loop,), name=f"controller-{loop.name}"
            )
            self._threads.append(thread)
            thread.start()
        log.info("Started %d controller(s)", len(self._threads))

    def cancel_all(self) -> None:
        log.info("Cancelling all controllers")
        self.stop_event.set()

    def wait(self, timeout: float | None = None) -> None:
        """Join every loop thread and re-raise the first loop failure."""

        for thread in self._threads:
            thread.join(timeout)
        errors = self.errors
        if errors:
            name, error = next(iter(errors.items()))
            raise RuntimeError(f"Controller {name!r} terminated with an error") from error

    def run(self) -> None:
        """Start every loop and block until all of them have stopped."""

        self.start()
        self.wait()

    def _run_loop(self, loop: ControllerLoop[Any, Any]) -> None:
        try:
            loop.run()
        except Exception as exc:
            log.exception("Controller %s failed", loop.name)
            with self._lock:
                self._errors[loop.name] = exc
            # one fatal controller takes the whole host down
            self.stop_event.set()
