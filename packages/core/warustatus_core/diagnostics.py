"""Diagnostics helpers: one-shot source probes and local support bundles."""

from __future__ import annotations

import json
import platform
import tempfile
import time
import zipfile
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import psutil

from warustatus_telemetry.models import MetricKind

from .config import AppConfig, config_path
from .logging_setup import log_dir


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Path):
        return str(value)
    return value


def probe_sources(sources: Mapping[MetricKind, Callable[[], Any]]) -> list[dict[str, Any]]:
    """Call every source once, synchronously, recording value or error."""
    rows: list[dict[str, Any]] = []
    for kind, source in sources.items():
        started = time.perf_counter()
        row: dict[str, Any] = {"metric": kind.value}
        try:
            value = source()
        except Exception as exc:
            row.update(ok=False, error=f"{type(exc).__name__}: {exc}")
        else:
            row.update(ok=True, value=_jsonable(value))
        row["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 3)
        rows.append(row)
    return rows


def build_doctor_payload(
    cfg: AppConfig,
    sources: Mapping[MetricKind, Callable[[], Any]] | None = None,
) -> dict[str, Any]:
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "psutil": psutil.__version__,
        "config_path": str(config_path()),
        "log_dir": str(log_dir()),
        "config": asdict(cfg),
        "probes": probe_sources(sources) if sources else [],
    }


class DiagnosticsExporter:
    def __init__(self, app_name: str = "warustatus") -> None:
        self.app_name = app_name

    def bundle(
        self,
        cfg: AppConfig,
        doctor_payload: dict[str, Any],
        recent_events: list[dict[str, Any]] | None = None,
        output_dir: Path | None = None,
    ) -> Path:
        output_base = output_dir or Path(tempfile.gettempdir())
        output_base.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        zip_path = output_base / f"{self.app_name}-diagnostics-{stamp}.zip"

        logs = sorted(log_dir().glob("*.log*"))

        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            manifest = {
                "app": self.app_name,
                "created_utc": datetime.now(timezone.utc).isoformat(),
                "host": platform.platform(),
                "python": platform.python_version(),
                "config_path": str(config_path()),
                "log_dir": str(log_dir()),
            }
            zf.writestr("manifest.json", json.dumps(manifest, indent=2, sort_keys=True))
            zf.writestr("doctor.json", json.dumps(doctor_payload, indent=2, sort_keys=True, default=_jsonable))
            zf.writestr("config.json", json.dumps(asdict(cfg), indent=2, sort_keys=True))
            zf.writestr(
                "scheduler_events.json",
                json.dumps(recent_events or [], indent=2, sort_keys=True, default=_jsonable),
            )

            for item in logs:
                zf.write(item, arcname=f"logs/{item.name}")

        return zip_path
