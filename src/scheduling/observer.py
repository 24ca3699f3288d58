"""Timing observer for scheduling operations.

Constructed by the caller and handed to whatever it should watch. Nothing is
recorded until start() and nothing after stop(), so tests and short-lived
workers can run without it.
"""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from scheduling.logging import get_logger

log = get_logger(__name__)


class OperationObserver:
    """Records wall-clock durations of named operations while started."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._started = False
        self._timings: dict[str, list[float]] = {}

    @property
    def started(self) -> bool:
        return self._started

    @property
    def timings(self) -> dict[str, list[float]]:
        """Durations in milliseconds per operation name, in call order."""
        return {name: list(values) for name, values in self._timings.items()}

    def start(self) -> None:
        self._started = True
        self._timings = {}
        log.debug("observer_started")

    def stop(self) -> dict[str, list[float]]:
        """Stop recording and return what was collected."""
        self._started = False
        log.debug(
            "observer_stopped",
            operations={name: len(values) for name, values in self._timings.items()},
        )
        return self.timings

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Time the wrapped block under `name`, including when it raises."""
        if not self._started:
            yield
            return
        began = self._clock()
        try:
            yield
        finally:
            elapsed_ms = (self._clock() - began) * 1000
            self._timings.setdefault(name, []).append(elapsed_ms)
            log.debug("operation_timed", operation=name, elapsed_ms=round(elapsed_ms, 3))
