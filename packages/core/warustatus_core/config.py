"""Persistent settings schema and load/save helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from warustatus_renderer.themes import DEFAULT_STYLE_NAME, list_styles
from warustatus_telemetry.models import MetricKind

from .cadence import DEFAULT_CADENCES, CadenceTable
from .logging_setup import config_root, get_logger


CONFIG_VERSION = 1
CONFIG_ENV = "WARUSTATUS_CONFIG"

_logger = get_logger("config")


def _default_cadences() -> dict[str, int]:
    return {kind.value: period for kind, period in DEFAULT_CADENCES.items()}


@dataclass
class SchedulerConfig:
    base_tick_ms: int = 500
    cadences: dict[str, int] = field(default_factory=_default_cadences)

    def cadence_table(self) -> CadenceTable:
        return CadenceTable({MetricKind(k): v for k, v in self.cadences.items()})


@dataclass
class DisplayConfig:
    style: str = DEFAULT_STYLE_NAME
    clock_format: str = "%H:%M"
    core_bars: bool = False
    net_bars: bool = False
    net_bar_full_scale_mb_s: float = 10.0


@dataclass
class NetworkConfig:
    exclude_prefixes: list[str] = field(default_factory=lambda: ["lo"])
    ip_probe_target: str = "8.8.8.8"


@dataclass
class AlertsConfig:
    enabled: bool = True
    desktop_notify: bool = True
    cpu_percent_max: float = 90.0
    memory_min_mb: int = 2000
    battery_low_percent: int = 15
    battery_critical_percent: int = 6


@dataclass
class DiagnosticsConfig:
    keep_log_files: int = 7
    log_level: str = "INFO"


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return config_root() / "config.json"


def _merge(dataclass_type, raw: Any):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _as_period(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def _as_number(value: Any, cast: type, default: Any) -> Any:
    if isinstance(value, bool):
        return default
    try:
        return cast(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _normalize_scheduler(cfg: AppConfig) -> None:
    merged = _default_cadences()
    raw = cfg.scheduler.cadences if isinstance(cfg.scheduler.cadences, dict) else {}
    for key, value in raw.items():
        period = _as_period(value)
        if key in merged and period is not None:
            merged[key] = period
    cfg.scheduler.cadences = merged

    shortest_ms = min(merged.values()) * 1000
    tick = _as_number(cfg.scheduler.base_tick_ms, int, SchedulerConfig.base_tick_ms)
    cfg.scheduler.base_tick_ms = max(50, min(shortest_ms, tick))


def _normalize_display(cfg: AppConfig) -> None:
    if cfg.display.style not in list_styles():
        cfg.display.style = DEFAULT_STYLE_NAME
    if not isinstance(cfg.display.clock_format, str) or not cfg.display.clock_format:
        cfg.display.clock_format = DisplayConfig.clock_format
    cfg.display.core_bars = bool(cfg.display.core_bars)
    cfg.display.net_bars = bool(cfg.display.net_bars)
    scale = _as_number(cfg.display.net_bar_full_scale_mb_s, float, 0.0)
    cfg.display.net_bar_full_scale_mb_s = scale if scale > 0 else DisplayConfig.net_bar_full_scale_mb_s


def _normalize_network(cfg: AppConfig) -> None:
    prefixes = cfg.network.exclude_prefixes
    if isinstance(prefixes, str):
        prefixes = [prefixes]
    if not isinstance(prefixes, list):
        prefixes = ["lo"]
    cfg.network.exclude_prefixes = [str(p) for p in prefixes if p]
    if not isinstance(cfg.network.ip_probe_target, str) or not cfg.network.ip_probe_target.strip():
        cfg.network.ip_probe_target = NetworkConfig.ip_probe_target


def _normalize_alerts(cfg: AppConfig) -> None:
    alerts = cfg.alerts
    alerts.enabled = bool(alerts.enabled)
    alerts.desktop_notify = bool(alerts.desktop_notify)
    cpu_max = _as_number(alerts.cpu_percent_max, float, AlertsConfig.cpu_percent_max)
    alerts.cpu_percent_max = max(1.0, min(100.0, cpu_max))
    alerts.memory_min_mb = max(0, _as_number(alerts.memory_min_mb, int, AlertsConfig.memory_min_mb))
    low = _as_number(alerts.battery_low_percent, int, AlertsConfig.battery_low_percent)
    alerts.battery_low_percent = max(0, min(100, low))
    critical = _as_number(alerts.battery_critical_percent, int, AlertsConfig.battery_critical_percent)
    alerts.battery_critical_percent = max(0, min(alerts.battery_low_percent, critical))


def _normalize_diagnostics(cfg: AppConfig) -> None:
    keep = _as_number(cfg.diagnostics.keep_log_files, int, DiagnosticsConfig.keep_log_files)
    cfg.diagnostics.keep_log_files = max(2, keep)
    level = str(cfg.diagnostics.log_level).upper()
    cfg.diagnostics.log_level = level if isinstance(logging.getLevelName(level), int) else "INFO"


def normalize_config(cfg: AppConfig) -> AppConfig:
    _normalize_scheduler(cfg)
    _normalize_display(cfg)
    _normalize_network(cfg)
    _normalize_alerts(cfg)
    _normalize_diagnostics(cfg)
    return cfg


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return normalize_config(AppConfig())

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        _logger.warning(f"ignoring unreadable config {path}: {exc}", extra={"event": "config_unreadable"})
        return normalize_config(AppConfig())
    if not isinstance(data, dict):
        return normalize_config(AppConfig())

    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        scheduler=_merge(SchedulerConfig, data.get("scheduler", {})),
        display=_merge(DisplayConfig, data.get("display", {})),
        network=_merge(NetworkConfig, data.get("network", {})),
        alerts=_merge(AlertsConfig, data.get("alerts", {})),
        diagnostics=_merge(DiagnosticsConfig, data.get("diagnostics", {})),
    )
    return normalize_config(cfg)


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
