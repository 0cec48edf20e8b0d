"""Blocking metric sources backed by psutil and the ``ip`` command.

Every source is a zero-argument callable. Stateless readers are plain
functions; stateful ones are the bound ``sample`` method of a sampler that
carries its previous counters between calls.
"""

from __future__ import annotations

import shutil
import socket
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Any, Callable, Iterable

import psutil

from .models import (
    UNAVAILABLE,
    BatteryInfo,
    ChargeState,
    CpuLoad,
    CpuTemp,
    MemoryInfo,
    MetricKind,
    NetworkRate,
)


MIB = 1024 * 1024
IP_TIMEOUT_S = 5.0

_MIN_ELAPSED_S = 0.1
_CPU_CHIPS = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "x86_pkg_temp", "acpitz")


class SampleError(RuntimeError):
    """A source failed transiently; the previous value stays current."""


@dataclass(frozen=True)
class _CpuTicks:
    idle: float
    total: float


@dataclass(frozen=True)
class _CpuCounters:
    overall: _CpuTicks
    cores: tuple[_CpuTicks, ...]


def _ticks(times: Any) -> _CpuTicks:
    fields = times._asdict()
    # guest time is already folded into user/nice on Linux
    total = sum(fields.values()) - fields.get("guest", 0.0) - fields.get("guest_nice", 0.0)
    idle = fields.get("idle", 0.0) + fields.get("iowait", 0.0)
    return _CpuTicks(idle=idle, total=total)


def _utilization(prev: _CpuTicks, curr: _CpuTicks) -> float:
    total_delta = curr.total - prev.total
    if total_delta <= 0:
        return 0.0
    idle_delta = max(curr.idle - prev.idle, 0.0)
    usage = (1.0 - idle_delta / total_delta) * 100.0
    return max(0.0, min(100.0, usage))


class CpuLoadSampler:
    """Utilisation since the previous sample, overall and per logical core."""

    def __init__(self) -> None:
        self._prev = self._read()

    @staticmethod
    def _read() -> _CpuCounters:
        overall = _ticks(psutil.cpu_times())
        cores = tuple(_ticks(t) for t in psutil.cpu_times(percpu=True))
        return _CpuCounters(overall=overall, cores=cores)

    def sample(self) -> CpuLoad:
        curr = self._read()
        percent = _utilization(self._prev.overall, curr.overall)
        if len(curr.cores) == len(self._prev.cores):
            per_core = tuple(_utilization(p, c) for p, c in zip(self._prev.cores, curr.cores))
        else:
            # hotplugged core; skip the per-core view for this interval
            per_core = ()
        self._prev = curr
        return CpuLoad(percent=percent, per_core=per_core)


@dataclass(frozen=True)
class _CounterSnapshot:
    ts: float
    rx_bytes: int
    tx_bytes: int


class NetworkRateSampler:
    """Receive/transmit MiB/s summed over every non-excluded interface."""

    def __init__(
        self,
        exclude_prefixes: Iterable[str] = ("lo",),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.exclude_prefixes = tuple(exclude_prefixes)
        self._clock = clock
        self._prev = self._read()

    def _read(self) -> _CounterSnapshot:
        counters = psutil.net_io_counters(pernic=True) or {}
        rx = 0
        tx = 0
        for name, nic in counters.items():
            if self.exclude_prefixes and name.startswith(self.exclude_prefixes):
                continue
            rx += nic.bytes_recv
            tx += nic.bytes_sent
        return _CounterSnapshot(ts=self._clock(), rx_bytes=rx, tx_bytes=tx)

    def sample(self) -> NetworkRate:
        curr = self._read()
        elapsed = max(curr.ts - self._prev.ts, _MIN_ELAPSED_S)
        rate = NetworkRate(
            rx_mb_s=max(curr.rx_bytes - self._prev.rx_bytes, 0) / elapsed / MIB,
            tx_mb_s=max(curr.tx_bytes - self._prev.tx_bytes, 0) / elapsed / MIB,
        )
        self._prev = curr
        return rate


def read_cpu_temp() -> CpuTemp:
    try:
        temps = psutil.sensors_temperatures()
    except AttributeError:
        # psutil exposes no sensor API on this platform
        return CpuTemp(celsius=None)
    if not temps:
        return CpuTemp(celsius=None)

    for name in _CPU_CHIPS:
        readings = [entry.current for entry in temps.get(name, ()) if entry.current is not None]
        if readings:
            return CpuTemp(celsius=float(max(readings)))
    return CpuTemp(celsius=None)


def read_memory() -> MemoryInfo:
    return MemoryInfo(available_mb=int(psutil.virtual_memory().available // MIB))


def read_battery() -> BatteryInfo:
    try:
        battery = psutil.sensors_battery()
    except AttributeError:
        battery = None
    if battery is None:
        return BatteryInfo.unavailable()

    plugged = battery.power_plugged
    if plugged is None:
        state = ChargeState.UNKNOWN
    elif plugged and battery.percent >= 99.5:
        state = ChargeState.FULL
    elif plugged:
        state = ChargeState.CHARGING
    else:
        state = ChargeState.DISCHARGING
    return BatteryInfo(percent=int(round(battery.percent)), state=state)


def read_clock(fmt: str = "%H:%M") -> str:
    return datetime.now().strftime(fmt)


def _parse_route_src(output: str) -> str:
    tokens = output.split()
    for idx, token in enumerate(tokens[:-1]):
        if token == "src":
            return tokens[idx + 1]
    return UNAVAILABLE


def _ip_via_socket(target: str) -> str:
    # connect() on a datagram socket only selects a route; nothing is sent
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        try:
            sock.connect((target, 80))
        except OSError:
            return UNAVAILABLE
        return str(sock.getsockname()[0])


def read_ip_address(target: str = "8.8.8.8", timeout_s: float = IP_TIMEOUT_S) -> str:
    """Source address the kernel would use to reach ``target``."""
    if shutil.which("ip") is None:
        return _ip_via_socket(target)

    try:
        proc = subprocess.run(
            ["ip", "route", "get", target],
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise SampleError(f"ip route lookup timed out after {timeout_s:g}s") from exc

    if proc.returncode != 0:
        return UNAVAILABLE
    return _parse_route_src(proc.stdout)


def build_metric_sources(
    clock_format: str = "%H:%M",
    exclude_prefixes: Iterable[str] = ("lo",),
    ip_target: str = "8.8.8.8",
) -> dict[MetricKind, Callable[[], Any]]:
    """Construct one source per metric kind.

    The stateful samplers take their baseline reading here, so this blocks
    briefly on the first counter reads.
    """
    return {
        MetricKind.CPU_LOAD: CpuLoadSampler().sample,
        MetricKind.CPU_TEMP: read_cpu_temp,
        MetricKind.MEMORY: read_memory,
        MetricKind.NETWORK: NetworkRateSampler(exclude_prefixes=exclude_prefixes).sample,
        MetricKind.BATTERY: read_battery,
        MetricKind.CLOCK: partial(read_clock, clock_format),
        MetricKind.IP: partial(read_ip_address, ip_target),
    }
