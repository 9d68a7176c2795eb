from typing import Any, Protocol, runtime_checkable

from metricreporter.metrics.tags import Tags


class CounterMetric(Protocol):
    def increment(self, amount: float) -> None: ...


class TimerMetric(Protocol):
    def record(self, nanos: int) -> None: ...


class GaugeSource(Protocol):
    @property
    def value(self) -> int: ...


@runtime_checkable
class MeterBackend(Protocol):
    """Registers metric definitions and hands back live handles.

    Independent registrations must be safe to call from multiple threads.
    Backends are not expected to deduplicate gauges: binding a second source
    to an identity that already has one is an error.
    """

    def register_counter(self, name: str, tags: Tags) -> CounterMetric: ...

    def register_timer(self, name: str, tags: Tags) -> TimerMetric: ...

    def register_gauge(self, name: str, tags: Tags, source: GaugeSource) -> Any:
        """Bind ``source`` so the backend samples ``source.value`` at export time."""
        ...
