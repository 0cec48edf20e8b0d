"""Per-metric sampling periods and the due check."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from warustatus_telemetry.models import MetricKind


DEFAULT_BASE_TICK_S = 0.5

DEFAULT_CADENCES: Mapping[MetricKind, int] = MappingProxyType(
    {
        MetricKind.BATTERY: 3600,
        MetricKind.CPU_LOAD: 10,
        MetricKind.MEMORY: 10,
        MetricKind.CPU_TEMP: 30,
        MetricKind.NETWORK: 2,
        MetricKind.CLOCK: 60,
        MetricKind.IP: 60,
    }
)


class CadenceTable(Mapping[MetricKind, int]):
    """Immutable kind -> period (whole seconds) mapping."""

    def __init__(self, periods: Mapping[MetricKind, int] | None = None) -> None:
        source = DEFAULT_CADENCES if periods is None else periods
        table: dict[MetricKind, int] = {}
        for kind, period in source.items():
            kind = MetricKind(kind)
            if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
                raise ValueError(f"cadence for {kind.value} must be a positive integer, got {period!r}")
            table[kind] = period
        if not table:
            raise ValueError("cadence table is empty")
        self._table = MappingProxyType(table)

    def __getitem__(self, kind: MetricKind) -> int:
        return self._table[kind]

    def __iter__(self) -> Iterator[MetricKind]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        body = ", ".join(f"{k.value}={v}" for k, v in self._table.items())
        return f"CadenceTable({body})"

    @property
    def shortest(self) -> int:
        return min(self._table.values())

    def is_due(self, kind: MetricKind, last_run: float | None, now: float) -> bool:
        if last_run is None:
            return True
        elapsed = now - last_run
        if elapsed < 0:
            # clock stepped backwards; run now rather than stall until it catches up
            return True
        return elapsed >= self._table[kind]
