"""System metric sources for warustatus."""

from .models import (
    DEFAULT_VALUES,
    UNAVAILABLE,
    BatteryInfo,
    ChargeState,
    CpuLoad,
    CpuTemp,
    MemoryInfo,
    MetricKind,
    NetworkRate,
)
try:  # pragma: no cover - optional at import time for minimal test environments
    from .provider import (
        CpuLoadSampler,
        NetworkRateSampler,
        SampleError,
        build_metric_sources,
        read_battery,
        read_clock,
        read_cpu_temp,
        read_ip_address,
        read_memory,
    )
except ImportError:  # pragma: no cover
    build_metric_sources = None  # type: ignore[assignment]

__all__ = [
    "DEFAULT_VALUES",
    "UNAVAILABLE",
    "BatteryInfo",
    "ChargeState",
    "CpuLoad",
    "CpuTemp",
    "MemoryInfo",
    "MetricKind",
    "NetworkRate",
]

if build_metric_sources is not None:
    __all__ += [
        "CpuLoadSampler",
        "NetworkRateSampler",
        "SampleError",
        "build_metric_sources",
        "read_battery",
        "read_clock",
        "read_cpu_temp",
        "read_ip_address",
        "read_memory",
    ]
