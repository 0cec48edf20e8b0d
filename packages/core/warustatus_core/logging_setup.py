"""Structured local logging and crash hook setup.

stdout carries the status line, so nothing here ever writes to it.
"""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import os
import platform
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO


_LOGGER_NAME = "warustatus"
_EXTRA_FIELDS = ("event", "metric", "metrics", "crash_id")

_fault_file: TextIO | None = None


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "warustatus"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "warustatus"
    base = os.environ.get("XDG_CONFIG_HOME")
    return (Path(base) if base else Path.home() / ".config") / "warustatus"


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


class JsonFormatter(logging.Formatter):
    """One JSON object per line for the rotating log file."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        return json.dumps(payload, ensure_ascii=True, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short stderr lines; the metric a record concerns is shown in brackets."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s%(metric_tag)s %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        metric = getattr(record, "metric", None)
        record.metric_tag = f" [{metric}]" if metric else ""
        return super().format(record)


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    level: str = "INFO",
    directory: Path | None = None,
) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    numeric = logging.getLevelName(str(level).upper())
    logger.setLevel(numeric if isinstance(numeric, int) else logging.INFO)
    if logger.handlers:
        # Already configured by an earlier call; only the level follows.
        return logger

    path = (directory or log_dir()) / "warustatus.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(stream_handler)

    # The handlers above are the only outputs; nothing reaches root handlers.
    logger.propagate = False
    logger.info("logging configured", extra={"event": "logging_configured"})
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    if name:
        return logging.getLogger(f"{_LOGGER_NAME}.{name}")
    return logging.getLogger(_LOGGER_NAME)


def _install_fault_handler(logger: logging.Logger) -> None:
    global _fault_file
    if _fault_file is not None:
        return
    _fault_file = (log_dir() / "fault.log").open("a", encoding="utf-8")
    faulthandler.enable(file=_fault_file, all_threads=True)
    logger.info("fault handler enabled", extra={"event": "fault_handler_enabled"})


def install_crash_hooks() -> None:
    logger = get_logger()

    def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            # Ctrl-C from a terminal is a normal way to stop the status line.
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        crash_id = str(uuid.uuid4())
        logger.critical(
            f"uncaught exception crash_id={crash_id}",
            exc_info=(exc_type, exc_value, exc_tb),
            extra={"event": "uncaught_exception", "crash_id": crash_id},
        )

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        crash_id = str(uuid.uuid4())
        logger.critical(
            f"thread {args.thread.name if args.thread else '?'} died crash_id={crash_id}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            extra={"event": "thread_exception", "crash_id": crash_id},
        )

    sys.excepthook = _log_uncaught
    threading.excepthook = _thread_hook
    _install_fault_handler(logger)
