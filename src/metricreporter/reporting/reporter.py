from metricreporter.core.logger import get_logger
from metricreporter.metrics.backend import MeterBackend
from metricreporter.metrics.tags import Tags, TagsLike
from metricreporter.reporting.handles import Counter, Gauge, GaugeCell, Timer
from metricreporter.reporting.registration import AsyncGaugeTable, GaugeKey, GaugeTable, RegisterFn


class _ReporterBase:
    def __init__(
        self,
        backend: MeterBackend,
        metric_prefix: str = "",
        global_tags: TagsLike = None,
    ) -> None:
        self.backend = backend
        self.metric_prefix = metric_prefix
        self.global_tags = Tags.of(global_tags)

    def qualified_name(self, name: str) -> str:
        return f"{self.metric_prefix}{name}"

    def effective_tags(self, tags: TagsLike = None) -> Tags:
        # call-site tags override global tags
        return self.global_tags.and_(tags)

    def _new_counter(self, name: str, tags: TagsLike) -> Counter:
        qualified, effective = self.qualified_name(name), self.effective_tags(tags)
        metric = self.backend.register_counter(qualified, effective)
        self._log_registered(qualified, "counter", effective)
        return Counter(metric)

    def _new_timer(self, name: str, tags: TagsLike) -> Timer:
        qualified, effective = self.qualified_name(name), self.effective_tags(tags)
        metric = self.backend.register_timer(qualified, effective)
        self._log_registered(qualified, "timer", effective)
        return Timer(metric)

    def _gauge_key(self, name: str, tags: TagsLike) -> GaugeKey:
        return self.qualified_name(name), self.effective_tags(tags)

    def _register_gauge(self, key: GaugeKey) -> RegisterFn:
        qualified, effective = key

        def register(cell: GaugeCell) -> object:
            return self.backend.register_gauge(qualified, effective, cell)

        return register

    def _log_registered(self, qualified: str, metric_type: str, tags: Tags) -> None:
        get_logger(
            __name__,
            metric_name=qualified,
            metric_type=metric_type,
            metric_prefix=self.metric_prefix,
            tags=str(tags),
        ).debug("Registered %s %s", metric_type, qualified)


class Reporter(_ReporterBase):
    """Hands out counters, timers and gauges for threaded code.

    Gauges are registered with the backend once per (qualified name, tags);
    later requests for the same identity get a handle on the same cell.
    """

    def __init__(
        self,
        backend: MeterBackend,
        metric_prefix: str = "",
        global_tags: TagsLike = None,
    ) -> None:
        super().__init__(backend, metric_prefix, global_tags)
        self.gauges = GaugeTable()

    @classmethod
    def from_registry(
        cls,
        backend: MeterBackend,
        metric_prefix: str = "",
        global_tags: TagsLike = None,
    ) -> "Reporter":
        return cls(backend, metric_prefix, global_tags)

    def counter(self, name: str, tags: TagsLike = None) -> Counter:
        return self._new_counter(name, tags)

    def timer(self, name: str, tags: TagsLike = None) -> Timer:
        return self._new_timer(name, tags)

    def gauge(self, name: str, tags: TagsLike = None) -> Gauge:
        key = self._gauge_key(name, tags)
        cell, created = self.gauges.resolve(key, self._register_gauge(key))
        if created:
            self._log_registered(key[0], "gauge", key[1])
        return Gauge(cell)


class AsyncReporter(_ReporterBase):
    """asyncio flavour of :class:`Reporter`.

    Only ``gauge`` can suspend, while it waits for the registration guard.
    ``counter`` and ``timer`` are coroutines so callers can treat the three
    uniformly.
    """

    def __init__(
        self,
        backend: MeterBackend,
        metric_prefix: str = "",
        global_tags: TagsLike = None,
    ) -> None:
        super().__init__(backend, metric_prefix, global_tags)
        self.gauges = AsyncGaugeTable()

    @classmethod
    async def from_registry(
        cls,
        backend: MeterBackend,
        metric_prefix: str = "",
        global_tags: TagsLike = None,
    ) -> "AsyncReporter":
        return cls(backend, metric_prefix, global_tags)

    async def counter(self, name: str, tags: TagsLike = None) -> Counter:
        return self._new_counter(name, tags)

    async def timer(self, name: str, tags: TagsLike = None) -> Timer:
        return self._new_timer(name, tags)

    async def gauge(self, name: str, tags: TagsLike = None) -> Gauge:
        key = self._gauge_key(name, tags)
        cell, created = await self.gauges.resolve(key, self._register_gauge(key))
        if created:
            self._log_registered(key[0], "gauge", key[1])
        return Gauge(cell)
