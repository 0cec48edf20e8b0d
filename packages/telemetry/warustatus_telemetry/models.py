"""Typed metric kinds and slot values."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


UNAVAILABLE = "N/A"


class MetricKind(str, Enum):
    CPU_LOAD = "cpu_load"
    CPU_TEMP = "cpu_temp"
    MEMORY = "memory"
    NETWORK = "network"
    BATTERY = "battery"
    CLOCK = "clock"
    IP = "ip"


class ChargeState(str, Enum):
    CHARGING = "charging"
    DISCHARGING = "discharging"
    FULL = "full"
    UNKNOWN = "unknown"
    NOT_PRESENT = "not_present"


@dataclass(frozen=True)
class CpuLoad:
    percent: float
    per_core: tuple[float, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CpuTemp:
    celsius: float | None

    @property
    def available(self) -> bool:
        return self.celsius is not None


@dataclass(frozen=True)
class MemoryInfo:
    available_mb: int

    @property
    def available_gb(self) -> float:
        return self.available_mb / 1024


@dataclass(frozen=True)
class NetworkRate:
    rx_mb_s: float
    tx_mb_s: float


@dataclass(frozen=True)
class BatteryInfo:
    percent: int
    state: ChargeState

    @classmethod
    def unavailable(cls) -> BatteryInfo:
        return cls(percent=0, state=ChargeState.NOT_PRESENT)

    @property
    def present(self) -> bool:
        return self.state != ChargeState.NOT_PRESENT


DEFAULT_VALUES: dict[MetricKind, Any] = {
    MetricKind.CPU_LOAD: CpuLoad(percent=0.0),
    MetricKind.CPU_TEMP: CpuTemp(celsius=None),
    MetricKind.MEMORY: MemoryInfo(available_mb=0),
    MetricKind.NETWORK: NetworkRate(rx_mb_s=0.0, tx_mb_s=0.0),
    MetricKind.BATTERY: BatteryInfo.unavailable(),
    MetricKind.CLOCK: "--:--",
    MetricKind.IP: UNAVAILABLE,
}
