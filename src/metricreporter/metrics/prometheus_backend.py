import re
from dataclasses import dataclass
from threading import RLock

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client.metrics import MetricWrapperBase

from metricreporter.metrics.backend import GaugeSource
from metricreporter.metrics.tags import Tags

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")
_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")
NANOS_PER_SECOND = 1_000_000_000


def sanitize_name(name: str) -> str:
    cleaned = _INVALID_NAME_CHARS.sub("_", name)
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def sanitize_label(label: str) -> str:
    cleaned = _INVALID_LABEL_CHARS.sub("_", label)
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


@dataclass
class PrometheusCounter:
    child: Counter

    def increment(self, amount: float) -> None:
        self.child.inc(amount)


@dataclass
class PrometheusTimer:
    child: Histogram

    def record(self, nanos: int) -> None:
        self.child.observe(nanos / NANOS_PER_SECOND)


class PrometheusBackend:
    """Backend writing into a ``prometheus_client.CollectorRegistry``.

    Collectors are created once per sanitised name and reused afterwards, the
    way repeated meter registration behaves in most client libraries. Tags
    become labels, so every registration under one name must use the same tag
    keys. Timers are histograms in seconds.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._lock = RLock()
        self._collectors: dict[str, tuple[type, tuple[str, ...], MetricWrapperBase]] = {}
        self._bound_gauges: set[tuple[str, tuple[str, ...]]] = set()

    def register_counter(self, name: str, tags: Tags) -> PrometheusCounter:
        return PrometheusCounter(self._child(Counter, name, tags))

    def register_timer(self, name: str, tags: Tags) -> PrometheusTimer:
        return PrometheusTimer(self._child(Histogram, name, tags))

    def register_gauge(self, name: str, tags: Tags, source: GaugeSource) -> Gauge:
        series = (sanitize_name(name), tuple(value for _, value in tags))
        with self._lock:
            if series in self._bound_gauges:
                raise ValueError(f"Gauge {name}[{tags}] is already registered")
            child = self._child(Gauge, name, tags)
            child.set_function(lambda: source.value)
            self._bound_gauges.add(series)
        return child

    def _child(self, kind: type, name: str, tags: Tags) -> MetricWrapperBase:
        metric_name = sanitize_name(name)
        labelnames = tuple(sanitize_label(key) for key in tags.keys())
        with self._lock:
            existing = self._collectors.get(metric_name)
            if existing is None:
                collector = kind(
                    metric_name,
                    f"{kind.__name__.lower()} {name}",
                    labelnames=labelnames,
                    registry=self.registry,
                )
                self._collectors[metric_name] = (kind, labelnames, collector)
            else:
                existing_kind, existing_labels, collector = existing
                if existing_kind is not kind:
                    raise ValueError(
                        f"{metric_name} is already registered as a {existing_kind.__name__.lower()}"
                    )
                if existing_labels != labelnames:
                    raise ValueError(
                        f"{metric_name} is registered with labels {existing_labels}, got {labelnames}"
                    )
        if not labelnames:
            return collector
        return collector.labels(*(value for _, value in tags))
