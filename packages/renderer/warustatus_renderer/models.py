"""Typed renderer models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from warustatus_telemetry.models import (
    DEFAULT_VALUES,
    BatteryInfo,
    CpuLoad,
    CpuTemp,
    MemoryInfo,
    MetricKind,
    NetworkRate,
)


@dataclass(frozen=True)
class GlyphStyle:
    name: str
    charging: str
    discharging: str
    full: str
    unknown: str
    tx_arrow: str
    rx_arrow: str
    temp_unit: str
    separator: str = "  "


@dataclass(frozen=True)
class StatusSnapshot:
    cpu_load: CpuLoad
    cpu_temp: CpuTemp
    memory: MemoryInfo
    network: NetworkRate
    battery: BatteryInfo
    clock: str
    ip: str

    @classmethod
    def capture(cls, read: Callable[[MetricKind], Any], kinds: tuple[MetricKind, ...] | None = None) -> StatusSnapshot:
        """Read every slot exactly once; kinds not being scheduled keep their defaults."""
        values = dict(DEFAULT_VALUES)
        for kind in kinds if kinds is not None else tuple(MetricKind):
            values[kind] = read(kind)
        return cls(
            cpu_load=values[MetricKind.CPU_LOAD],
            cpu_temp=values[MetricKind.CPU_TEMP],
            memory=values[MetricKind.MEMORY],
            network=values[MetricKind.NETWORK],
            battery=values[MetricKind.BATTERY],
            clock=values[MetricKind.CLOCK],
            ip=values[MetricKind.IP],
        )
