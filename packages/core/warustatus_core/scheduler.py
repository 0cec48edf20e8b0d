"""Multi-rate sampling scheduler with latest-value publication."""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable

from warustatus_telemetry.models import MetricKind

from .cadence import DEFAULT_BASE_TICK_S, CadenceTable
from .change_signal import ChangeSignal
from .logging_setup import get_logger
from .slot import LatestValueSlot, SlotView


MetricSource = Callable[[], Any]

_logger = get_logger("scheduler")
_MAX_EVENTS = 1000


class SchedulerInvariantError(RuntimeError):
    """Raised when two dispatches for one metric kind overlap."""


def default_clock() -> Callable[[], float]:
    # CLOCK_BOOTTIME keeps counting through suspend, so overdue metrics are
    # noticed on the first tick after resume.
    if hasattr(time, "CLOCK_BOOTTIME"):
        return partial(time.clock_gettime, time.CLOCK_BOOTTIME)
    return time.monotonic


@dataclass
class MetricStatus:
    kind: MetricKind
    cadence_s: int
    dispatches: int = 0
    publishes: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    in_flight: bool = False
    last_dispatch: float | None = None
    last_publish: float | None = None
    last_error: str | None = None


class Scheduler:
    def __init__(
        self,
        sources: Mapping[MetricKind, MetricSource],
        defaults: Mapping[MetricKind, Any],
        cadences: Mapping[MetricKind, int] | None = None,
        base_tick_s: float = DEFAULT_BASE_TICK_S,
        clock: Callable[[], float] | None = None,
        executor: Executor | None = None,
        signal: ChangeSignal | None = None,
    ) -> None:
        if not sources:
            raise ValueError("at least one metric source is required")
        table = cadences if isinstance(cadences, CadenceTable) else CadenceTable(cadences)
        if base_tick_s <= 0:
            raise ValueError(f"base tick must be positive, got {base_tick_s!r}")

        kinds = [MetricKind(k) for k in sources]
        for kind in kinds:
            if kind not in table:
                raise ValueError(f"no cadence configured for {kind.value}")
            if kind not in defaults:
                raise ValueError(f"no default value for {kind.value}")
        shortest = min(table[k] for k in kinds)
        if base_tick_s > shortest:
            raise ValueError(f"base tick {base_tick_s}s exceeds the shortest cadence {shortest}s")

        self.cadences = table
        self.base_tick_s = float(base_tick_s)
        self._kinds = tuple(kinds)
        self._sources: dict[MetricKind, MetricSource] = {MetricKind(k): fn for k, fn in sources.items()}
        self._slots: dict[MetricKind, LatestValueSlot[Any]] = {
            k: LatestValueSlot(defaults[k], name=k.value) for k in self._kinds
        }
        self._signal = signal or ChangeSignal()
        self._clock = clock or default_clock()

        # Loop-thread only.
        self._last_run: dict[MetricKind, float | None] = {k: None for k in self._kinds}
        self._inflight: dict[MetricKind, Future | None] = {k: None for k in self._kinds}

        # Held by a dispatch for the whole sample; never waited on.
        self._guards = {k: threading.Lock() for k in self._kinds}

        self._lock = threading.Lock()
        self._status = {k: MetricStatus(kind=k, cadence_s=table[k]) for k in self._kinds}
        self._events: list[dict[str, Any]] = []

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=len(self._kinds),
            thread_name_prefix="warustatus-sample",
        )
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._failure: BaseException | None = None
        self._closed = False

    @property
    def kinds(self) -> tuple[MetricKind, ...]:
        return self._kinds

    @property
    def signal(self) -> ChangeSignal:
        return self._signal

    @property
    def failure(self) -> BaseException | None:
        return self._failure

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def read(self, kind: MetricKind) -> Any:
        return self._slots[kind].read()

    def reader(self, kind: MetricKind) -> SlotView[Any]:
        return self._slots[kind].view()

    def snapshot(self) -> dict[MetricKind, Any]:
        return {k: self._slots[k].read() for k in self._kinds}

    def wait_for_change(self, timeout: float | None = None) -> bool:
        return self._signal.wait_and_clear(timeout)

    def status(self, kind: MetricKind) -> MetricStatus:
        with self._lock:
            return replace(self._status[kind])

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        with self._lock:
            return self._events[-limit:]

    def _log_event(self, event: str, kind: MetricKind, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "metric": kind.value,
        }
        row.update(fields)
        with self._lock:
            self._events.append(row)
            if len(self._events) > _MAX_EVENTS:
                self._events = self._events[-_MAX_EVENTS:]

    def tick(self, now: float | None = None) -> list[MetricKind]:
        """Run one due-check pass and return the kinds that were dispatched."""
        now = self._clock() if now is None else now
        dispatched: list[MetricKind] = []

        for kind in self._kinds:
            pending = self._inflight[kind]
            if pending is not None:
                if not pending.done():
                    continue
                self._inflight[kind] = None
                # Sampler errors are handled inside the dispatch; anything
                # surfacing here is an invariant violation.
                pending.result()

            if not self.cadences.is_due(kind, self._last_run[kind], now):
                continue

            self._last_run[kind] = now
            with self._lock:
                status = self._status[kind]
                status.dispatches += 1
                status.in_flight = True
                status.last_dispatch = now
            self._inflight[kind] = self._executor.submit(self._dispatch, kind)
            dispatched.append(kind)

        return dispatched

    def _dispatch(self, kind: MetricKind) -> None:
        guard = self._guards[kind]
        if not guard.acquire(blocking=False):
            raise SchedulerInvariantError(f"dispatch for {kind.value} started while another is outstanding")
        try:
            self._sample_and_publish(kind)
        finally:
            guard.release()
            with self._lock:
                self._status[kind].in_flight = False

    def _sample_and_publish(self, kind: MetricKind) -> None:
        started = time.perf_counter()
        try:
            value = self._sources[kind]()
        except Exception as exc:
            with self._lock:
                status = self._status[kind]
                status.failures += 1
                status.consecutive_failures += 1
                status.last_error = f"{type(exc).__name__}: {exc}"
                consecutive = status.consecutive_failures
            self._log_event("sample_error", kind, error=str(exc), consecutive=consecutive)
            _logger.warning(
                f"sampling {kind.value} failed; keeping previous value",
                exc_info=True,
                extra={"event": "sample_error", "metric": kind.value},
            )
            return

        version = self._slots[kind].publish(value)
        with self._lock:
            status = self._status[kind]
            status.publishes += 1
            status.consecutive_failures = 0
            status.last_publish = self._clock()
            status.last_error = None
        self._signal.notify()

        duration_ms = (time.perf_counter() - started) * 1000.0
        self._log_event("publish", kind, version=version, duration_ms=duration_ms)
        _logger.debug(
            f"published {kind.value} v{version}",
            extra={"event": "publish", "metric": kind.value},
        )

    def run(self) -> None:
        """Tick every ``base_tick_s`` until ``stop()`` is called."""
        _logger.info(
            "scheduler started",
            extra={"event": "scheduler_started", "metrics": [k.value for k in self._kinds]},
        )
        try:
            while not self._stop.is_set():
                started = time.monotonic()
                self.tick()
                elapsed = time.monotonic() - started
                self._stop.wait(max(0.0, self.base_tick_s - elapsed))
        except BaseException as exc:
            self._failure = exc
            self._stop.set()
            # wake the consumer so it can observe the failure
            self._signal.notify()
            raise
        finally:
            _logger.info("scheduler stopped", extra={"event": "scheduler_stopped"})

    def start(self) -> None:
        if self.running:
            return
        if self._closed:
            raise RuntimeError("scheduler has been stopped and cannot be restarted")
        self._stop.clear()
        self._failure = None
        self._thread = threading.Thread(target=self.run, name="warustatus-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._closed = True
        if self._owns_executor:
            # in-flight samples are left to finish on their own
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> Scheduler:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
