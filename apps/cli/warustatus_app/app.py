"""Status-line runtime: scheduler wiring and the single consumer loop."""

from __future__ import annotations

import sys
import threading
import time
from typing import TextIO

from warustatus_core import AlertMonitor, AppConfig, Scheduler
from warustatus_core.logging_setup import get_logger
from warustatus_renderer import StatusLineRenderer, StatusSnapshot
from warustatus_telemetry import DEFAULT_VALUES, build_metric_sources

_logger = get_logger("app")


def build_sources(cfg: AppConfig):
    return build_metric_sources(
        clock_format=cfg.display.clock_format,
        exclude_prefixes=cfg.network.exclude_prefixes,
        ip_target=cfg.network.ip_probe_target,
    )


def build_scheduler(cfg: AppConfig) -> Scheduler:
    return Scheduler(
        sources=build_sources(cfg),
        defaults=DEFAULT_VALUES,
        cadences=cfg.scheduler.cadence_table(),
        base_tick_s=cfg.scheduler.base_tick_ms / 1000.0,
    )


def build_renderer(cfg: AppConfig) -> StatusLineRenderer:
    return StatusLineRenderer(
        style=cfg.display.style,
        core_bars=cfg.display.core_bars,
        net_bars=cfg.display.net_bars,
        net_full_scale_mb_s=cfg.display.net_bar_full_scale_mb_s,
    )


def render_once(cfg: AppConfig, window_s: float = 1.0) -> str:
    """Sample every metric synchronously and render one line.

    Rate metrics need two readings, so the samplers are created, left for
    ``window_s`` and then sampled.
    """
    sources = build_sources(cfg)
    if window_s > 0:
        time.sleep(window_s)
    values = {}
    for kind, source in sources.items():
        try:
            values[kind] = source()
        except Exception:
            _logger.warning(
                f"sampling {kind.value} failed; showing its default",
                exc_info=True,
                extra={"event": "sample_error", "metric": kind.value},
            )
            values[kind] = DEFAULT_VALUES[kind]
    snap = StatusSnapshot.capture(values.__getitem__, tuple(values))
    return build_renderer(cfg).render(snap)


def record_scheduler_events(cfg: AppConfig, duration_s: float = 2.0) -> list[dict]:
    """Run a scheduler for ``duration_s`` and return its event log."""
    scheduler = build_scheduler(cfg)
    with scheduler:
        time.sleep(duration_s)
    return scheduler.recent_events()


class StatusLineApp:
    """Prints a new line to ``out`` whenever the rendered status changes."""

    def __init__(
        self,
        cfg: AppConfig,
        scheduler: Scheduler | None = None,
        out: TextIO | None = None,
        alerts: AlertMonitor | None = None,
    ) -> None:
        self.cfg = cfg
        self.logger = _logger
        self.scheduler = scheduler or build_scheduler(cfg)
        self.renderer = build_renderer(cfg)
        self.alerts = alerts or AlertMonitor(cfg.alerts)
        self.out = out or sys.stdout
        self._stop = threading.Event()
        self._last_line: str | None = None

    @property
    def last_line(self) -> str | None:
        return self._last_line

    def stop(self) -> None:
        self._stop.set()

    def render_current(self) -> str | None:
        """Render the current slots; returns the line only if it was printed."""
        # Value and version come from one read per slot, so a kind counts as
        # ready only when the value in the snapshot is a published one.
        states = {k: self.scheduler.reader(k).snapshot() for k in self.scheduler.kinds}
        snap = StatusSnapshot.capture(lambda k: states[k][0], self.scheduler.kinds)
        ready = [k for k, (_value, version) in states.items() if version > 0]
        self.alerts.evaluate(snap, ready)
        line = self.renderer.render(snap)
        if line == self._last_line:
            return None
        self._last_line = line
        print(line, file=self.out, flush=True)
        return line

    def run(self, max_lines: int | None = None, wait_timeout_s: float = 1.0) -> int:
        self.logger.info("status line started", extra={"event": "app_started"})
        self.scheduler.start()
        printed = 0
        try:
            while not self._stop.is_set():
                woke = self.scheduler.wait_for_change(timeout=wait_timeout_s)
                failure = self.scheduler.failure
                if failure is not None:
                    raise failure
                if not woke:
                    continue
                if self.render_current() is not None:
                    printed += 1
                    if max_lines is not None and printed >= max_lines:
                        break
        except BrokenPipeError:
            # the bar reading stdout went away
            self.logger.info("stdout closed", extra={"event": "stdout_closed"})
        finally:
            self.scheduler.stop()
            self.logger.info("status line stopped", extra={"event": "app_stopped"})
        return 0
