from metricreporter.core.config import Settings, get_settings
from metricreporter.core.logger import configure_logging
from metricreporter.metrics.backend import MeterBackend
from metricreporter.metrics.memory_backend import InMemoryBackend
from metricreporter.metrics.prometheus_backend import PrometheusBackend
from metricreporter.reporting.reporter import AsyncReporter, Reporter


def build_backend(settings: Settings) -> MeterBackend:
    if settings.metrics_backend == "memory":
        return InMemoryBackend()
    return PrometheusBackend()


def build_reporter(backend: MeterBackend | None = None, settings: Settings | None = None) -> Reporter:
    settings = settings or get_settings()
    return Reporter.from_registry(
        backend or build_backend(settings),
        metric_prefix=settings.metrics_prefix,
        global_tags=settings.global_tags,
    )


async def build_async_reporter(
    backend: MeterBackend | None = None, settings: Settings | None = None
) -> AsyncReporter:
    settings = settings or get_settings()
    return await AsyncReporter.from_registry(
        backend or build_backend(settings),
        metric_prefix=settings.metrics_prefix,
        global_tags=settings.global_tags,
    )


def bootstrap() -> Reporter:
    settings = get_settings()
    configure_logging(settings.app_env)
    return build_reporter(settings=settings)
