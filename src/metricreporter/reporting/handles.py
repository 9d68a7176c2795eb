from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from datetime import timedelta
from threading import Lock
from time import perf_counter_ns
from typing import Any, TypeVar

from metricreporter.metrics.backend import CounterMetric, TimerMetric

T = TypeVar("T")

NANOS_PER_MICROSECOND = 1_000
NANOS_PER_SECOND = 1_000_000_000


class InvalidIncrementError(ValueError):
    pass


class GaugeCell:
    """Shared integer a gauge reads from and writes to."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = Lock()

    @property
    def value(self) -> int:
        return self._value

    def add(self, delta: int) -> int:
        with self._lock:
            previous = self._value
            self._value = previous + delta
        return previous

    def __repr__(self) -> str:
        return f"GaugeCell(value={self._value})"


class Counter:
    def __init__(self, metric: CounterMetric) -> None:
        self._metric = metric

    def increment(self, n: int = 1) -> None:
        if n < 0:
            raise InvalidIncrementError(f"Counter increment must be non-negative, got {n}")
        self._metric.increment(float(n))


def to_nanos(duration: timedelta | float) -> int:
    if isinstance(duration, timedelta):
        whole_seconds = duration.days * 86_400 + duration.seconds
        return whole_seconds * NANOS_PER_SECOND + duration.microseconds * NANOS_PER_MICROSECOND
    return round(duration * NANOS_PER_SECOND)


class Timer:
    def __init__(self, metric: TimerMetric) -> None:
        self._metric = metric

    def record(self, duration: timedelta | float) -> None:
        """Record ``duration``, a ``timedelta`` or a number of seconds."""
        self._metric.record(to_nanos(duration))

    @contextmanager
    def time(self) -> Iterator["Timer"]:
        start = perf_counter_ns()
        try:
            yield self
        finally:
            self._metric.record(perf_counter_ns() - start)


class Gauge:
    def __init__(self, cell: GaugeCell) -> None:
        self.cell = cell

    @property
    def value(self) -> int:
        return self.cell.value

    def increment(self, n: int = 1) -> None:
        self.cell.add(n)

    def decrement(self, n: int = 1) -> None:
        self.increment(-n)

    @contextmanager
    def track(self) -> Iterator["Gauge"]:
        """Hold the gauge one higher for the duration of the block.

        The decrement runs on every exit path, including exceptions and
        ``asyncio.CancelledError``. If the decrement itself raises, that error
        replaces whatever the block produced.
        """
        self.increment()
        try:
            yield self
        finally:
            self.decrement()

    def surround(self, action: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.track():
            return action(*args, **kwargs)

    async def surround_async(self, action: Awaitable[T]) -> T:
        with self.track():
            return await action
