import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from metricreporter.metrics.memory_backend import InMemoryBackend
from metricreporter.metrics.tags import Tags
from metricreporter.reporting.reporter import Reporter


class _SlowBackend(InMemoryBackend):
    def register_gauge(self, name, tags, source):
        time.sleep(0.01)
        return super().register_gauge(name, tags, source)


class _FailingGaugeBackend(InMemoryBackend):
    def __init__(self) -> None:
        super().__init__()
        self.failures_left = 1

    def register_gauge(self, name, tags, source):
        if self.failures_left:
            self.failures_left -= 1
            raise RuntimeError("backend unavailable")
        return super().register_gauge(name, tags, source)


def test_gauge_example_with_prefix_and_global_tags() -> None:
    backend = InMemoryBackend()
    reporter = Reporter.from_registry(backend, metric_prefix="app.", global_tags={"env": "prod"})

    gauge = reporter.gauge("inflight", {"route": "/x"})
    tags = Tags.of({"env": "prod", "route": "/x"})
    assert backend.registration_count("gauge", "app.inflight", tags) == 1
    assert backend.gauge_value("app.inflight", tags) == 0

    gauge.increment(3)
    gauge.decrement(1)
    assert gauge.value == 2
    assert backend.gauge_value("app.inflight", tags) == 2


def test_call_site_tags_override_global_tags() -> None:
    reporter = Reporter(InMemoryBackend(), global_tags={"env": "prod", "zone": "a"})
    assert reporter.effective_tags({"zone": "b"}).as_dict() == {"env": "prod", "zone": "b"}
    assert reporter.qualified_name("x") == "x"


def test_sequential_gauge_requests_share_one_cell_and_one_registration() -> None:
    backend = InMemoryBackend()
    reporter = Reporter(backend, metric_prefix="svc_")
    handles = [reporter.gauge("queue_depth") for _ in range(5)]
    handles[0].increment()
    assert {handle.value for handle in handles} == {1}
    assert backend.registration_count("gauge", "svc_queue_depth") == 1
    assert len(reporter.gauges) == 1


def test_concurrent_gauge_requests_register_once() -> None:
    backend = _SlowBackend()
    reporter = Reporter(backend)
    barrier = threading.Barrier(16)

    def request():
        barrier.wait()
        return reporter.gauge("workers")

    with ThreadPoolExecutor(max_workers=16) as pool:
        handles = list(pool.map(lambda _: request(), range(16)))

    assert backend.registration_count("gauge", "workers") == 1
    assert len({id(handle.cell) for handle in handles}) == 1
    handles[3].increment()
    assert handles[11].value == 1


def test_concurrent_mutations_lose_no_updates() -> None:
    reporter = Reporter(InMemoryBackend())
    gauge = reporter.gauge("active")

    def work(_: int) -> None:
        for _ in range(1000):
            gauge.increment()
            gauge.increment(2)
            gauge.decrement()

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(work, range(8)))
    assert gauge.value == 8 * 1000 * 2


def test_same_gauge_name_with_different_tags_gets_separate_cells() -> None:
    backend = InMemoryBackend()
    reporter = Reporter(backend)
    first = reporter.gauge("inflight", {"route": "/a"})
    second = reporter.gauge("inflight", {"route": "/b"})
    first.increment()
    assert second.value == 0
    assert backend.registration_count("gauge", "inflight", Tags.of({"route": "/a"})) == 1
    assert backend.registration_count("gauge", "inflight", Tags.of({"route": "/b"})) == 1


def test_failed_gauge_registration_is_not_stored() -> None:
    backend = _FailingGaugeBackend()
    reporter = Reporter(backend)
    with pytest.raises(RuntimeError, match="backend unavailable"):
        reporter.gauge("connections")
    assert len(reporter.gauges) == 0

    gauge = reporter.gauge("connections")
    gauge.increment()
    assert backend.gauge_value("connections") == 1


def test_counters_register_on_every_request() -> None:
    backend = InMemoryBackend()
    reporter = Reporter(backend)
    reporter.counter("hits").increment()
    reporter.counter("hits").increment(2)
    assert backend.registration_count("counter", "hits") == 2
    assert backend.counters[("hits", Tags())] == 3.0


def test_independent_reporters_have_independent_tables() -> None:
    first = Reporter(InMemoryBackend())
    second = Reporter(InMemoryBackend())
    first.gauge("depth").increment()
    assert second.gauge("depth").value == 0
