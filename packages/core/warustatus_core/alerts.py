"""Edge-triggered threshold alerts with optional desktop notifications."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Collection
from dataclasses import dataclass
from typing import Callable

from warustatus_renderer.models import StatusSnapshot
from warustatus_telemetry.models import ChargeState, MetricKind

from .config import AlertsConfig
from .logging_setup import get_logger


_logger = get_logger("alerts")
NOTIFY_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class Alert:
    key: str
    urgency: str
    summary: str
    body: str


def notify_send(alert: Alert) -> None:
    exe = shutil.which("notify-send")
    if exe is None:
        return
    try:
        subprocess.run(
            [exe, "-u", alert.urgency, alert.summary, alert.body],
            check=False,
            capture_output=True,
            timeout=NOTIFY_TIMEOUT_S,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        _logger.warning(f"desktop notification failed: {exc}", extra={"event": "notify_failed"})


class AlertMonitor:
    """Fires each alert once when its condition starts holding.

    A condition re-arms only after it has been observed clear, so a metric
    sitting above its threshold does not produce a notification per wake.
    """

    def __init__(self, cfg: AlertsConfig, notifier: Callable[[Alert], None] | None = None) -> None:
        self.cfg = cfg
        if notifier is None and cfg.desktop_notify:
            notifier = notify_send
        self._notifier = notifier
        self._active: set[str] = set()

    @property
    def active(self) -> frozenset[str]:
        return frozenset(self._active)

    def _conditions(self, snap: StatusSnapshot, ready: Collection[MetricKind]) -> dict[str, Alert]:
        cfg = self.cfg
        out: dict[str, Alert] = {}

        if MetricKind.CPU_LOAD in ready and snap.cpu_load.percent > cfg.cpu_percent_max:
            out["cpu_high"] = Alert(
                key="cpu_high",
                urgency="critical",
                summary="CPU usage warning",
                body=f"CPU usage at {snap.cpu_load.percent:.0f}% (limit {cfg.cpu_percent_max:.0f}%)",
            )

        if MetricKind.MEMORY in ready and snap.memory.available_mb < cfg.memory_min_mb:
            out["memory_low"] = Alert(
                key="memory_low",
                urgency="low",
                summary="Memory warning",
                body=f"Available memory: {snap.memory.available_mb}MB",
            )

        battery = snap.battery
        if MetricKind.BATTERY in ready and battery.state == ChargeState.DISCHARGING:
            if battery.percent <= cfg.battery_critical_percent:
                out["battery_critical"] = Alert(
                    key="battery_critical",
                    urgency="critical",
                    summary="Battery critical",
                    body=f"Remaining charge: {battery.percent}%",
                )
            elif battery.percent <= cfg.battery_low_percent:
                out["battery_low"] = Alert(
                    key="battery_low",
                    urgency="low",
                    summary="Battery low",
                    body=f"Remaining charge: {battery.percent}%",
                )
        return out

    def evaluate(self, snap: StatusSnapshot, ready: Collection[MetricKind] | None = None) -> list[Alert]:
        """Return alerts that became active with this snapshot.

        ``ready`` names the kinds that have published at least once; default
        slot values for the others are not judged.
        """
        if not self.cfg.enabled:
            return []
        conditions = self._conditions(snap, tuple(MetricKind) if ready is None else ready)
        fired = [alert for key, alert in conditions.items() if key not in self._active]
        self._active = set(conditions)

        for alert in fired:
            _logger.warning(
                f"{alert.summary}: {alert.body}",
                extra={"event": "alert", "metric": alert.key},
            )
            if self._notifier is not None:
                self._notifier(alert)
        return fired
