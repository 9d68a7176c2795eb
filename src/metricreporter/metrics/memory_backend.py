from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock

from metricreporter.metrics.backend import GaugeSource
from metricreporter.metrics.tags import Tags

MetricKey = tuple[str, Tags]


@dataclass
class MemoryCounter:
    backend: "InMemoryBackend"
    key: MetricKey

    def increment(self, amount: float) -> None:
        with self.backend.lock:
            self.backend.counters[self.key] += amount


@dataclass
class MemoryTimer:
    backend: "InMemoryBackend"
    key: MetricKey

    def record(self, nanos: int) -> None:
        with self.backend.lock:
            self.backend.timers[self.key].append(nanos)


@dataclass
class InMemoryBackend:
    counters: dict[MetricKey, float] = field(default_factory=lambda: defaultdict(float))
    timers: dict[MetricKey, list[int]] = field(default_factory=lambda: defaultdict(list))
    gauges: dict[MetricKey, GaugeSource] = field(default_factory=dict)
    registrations: dict[tuple[str, str, Tags], int] = field(default_factory=lambda: defaultdict(int))
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def register_counter(self, name: str, tags: Tags) -> MemoryCounter:
        with self.lock:
            self.registrations[("counter", name, tags)] += 1
            self.counters[(name, tags)] += 0.0
        return MemoryCounter(self, (name, tags))

    def register_timer(self, name: str, tags: Tags) -> MemoryTimer:
        with self.lock:
            self.registrations[("timer", name, tags)] += 1
            self.timers.setdefault((name, tags), [])
        return MemoryTimer(self, (name, tags))

    def register_gauge(self, name: str, tags: Tags, source: GaugeSource) -> GaugeSource:
        with self.lock:
            self.registrations[("gauge", name, tags)] += 1
            if (name, tags) in self.gauges:
                raise ValueError(f"Gauge {name}[{tags}] is already registered")
            self.gauges[(name, tags)] = source
        return source

    def registration_count(self, kind: str, name: str, tags: Tags | None = None) -> int:
        return self.registrations.get((kind, name, tags or Tags()), 0)

    def gauge_value(self, name: str, tags: Tags | None = None) -> int | None:
        source = self.gauges.get((name, tags or Tags()))
        return None if source is None else source.value

    def snapshot(self) -> dict[str, dict]:
        with self.lock:
            return {
                "counters": {f"{name}[{tags}]": value for (name, tags), value in self.counters.items()},
                "timers": {f"{name}[{tags}]": list(samples) for (name, tags), samples in self.timers.items()},
                "gauges": {f"{name}[{tags}]": source.value for (name, tags), source in self.gauges.items()},
            }
