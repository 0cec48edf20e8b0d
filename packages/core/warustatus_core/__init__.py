"""Core services: multi-rate scheduler, broadcast slots, config, alerts, and diagnostics."""

from .alerts import Alert, AlertMonitor, notify_send
from .cadence import DEFAULT_BASE_TICK_S, DEFAULT_CADENCES, CadenceTable
from .change_signal import ChangeSignal
from .config import AppConfig, config_path, load_config, save_config
from .diagnostics import DiagnosticsExporter, build_doctor_payload, probe_sources
from .scheduler import MetricStatus, Scheduler, SchedulerInvariantError
from .slot import LatestValueSlot, SlotView

__all__ = [
    "Alert",
    "AlertMonitor",
    "AppConfig",
    "CadenceTable",
    "ChangeSignal",
    "DEFAULT_BASE_TICK_S",
    "DEFAULT_CADENCES",
    "DiagnosticsExporter",
    "LatestValueSlot",
    "MetricStatus",
    "Scheduler",
    "SchedulerInvariantError",
    "SlotView",
    "build_doctor_payload",
    "config_path",
    "load_config",
    "notify_send",
    "probe_sources",
    "save_config",
]
