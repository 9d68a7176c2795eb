import asyncio
from collections.abc import Callable
from threading import Lock

from metricreporter.metrics.tags import Tags
from metricreporter.reporting.handles import GaugeCell

GaugeKey = tuple[str, Tags]
RegisterFn = Callable[[GaugeCell], object]


class _GaugeCells:
    def __init__(self) -> None:
        self._cells: dict[GaugeKey, GaugeCell] = {}

    def get(self, key: GaugeKey) -> GaugeCell | None:
        return self._cells.get(key)

    def __contains__(self, key: GaugeKey) -> bool:
        return key in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def _get_or_create(self, key: GaugeKey, register: RegisterFn) -> tuple[GaugeCell, bool]:
        # Caller holds the guard. The cell is stored only once `register` returned.
        existing = self._cells.get(key)
        if existing is not None:
            return existing, False
        cell = GaugeCell()
        register(cell)
        self._cells[key] = cell
        return cell, True


class GaugeTable(_GaugeCells):
    """Gauge cells keyed by (qualified name, tags), guarded by a thread lock."""

    def __init__(self) -> None:
        super().__init__()
        self._guard = Lock()

    def resolve(self, key: GaugeKey, register: RegisterFn) -> tuple[GaugeCell, bool]:
        with self._guard:
            return self._get_or_create(key, register)


class AsyncGaugeTable(_GaugeCells):
    """Same as :class:`GaugeTable` for asyncio callers.

    A task cancelled while waiting for the guard never reaches the
    check-or-create step.
    """

    def __init__(self) -> None:
        super().__init__()
        self._guard = asyncio.Lock()

    async def resolve(self, key: GaugeKey, register: RegisterFn) -> tuple[GaugeCell, bool]:
        async with self._guard:
            return self._get_or_create(key, register)
