"""CLI entrypoints for the status line, diagnostics, and config management."""

from __future__ import annotations

import argparse
import json
import signal
import threading
from dataclasses import asdict
from pathlib import Path

from warustatus_core import (
    AppConfig,
    DiagnosticsExporter,
    SchedulerInvariantError,
    build_doctor_payload,
    config_path,
    load_config,
    save_config,
)
from warustatus_core.logging_setup import configure_logging, get_logger, install_crash_hooks

from .app import StatusLineApp, build_sources, record_scheduler_events, render_once


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _load(args: argparse.Namespace) -> AppConfig:
    return load_config(Path(args.config).expanduser() if args.config else None)


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _load(args)
    install_crash_hooks()
    app = StatusLineApp(cfg)

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, lambda _signum, _frame: app.stop())

    try:
        return app.run(max_lines=args.max_lines)
    except KeyboardInterrupt:
        return 0
    except SchedulerInvariantError:
        get_logger().critical("scheduler invariant violated", exc_info=True, extra={"event": "scheduler_fatal"})
        return 2


def cmd_once(args: argparse.Namespace) -> int:
    cfg = _load(args)
    print(render_once(cfg, window_s=args.window), flush=True)
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = _load(args)
    payload = build_doctor_payload(cfg, build_sources(cfg))

    if args.export:
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        events = record_scheduler_events(cfg, duration_s=args.window) if args.window > 0 else []
        bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, recent_events=events, output_dir=out_dir)
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    path = Path(args.config).expanduser() if args.config else config_path()

    if args.config_cmd == "path":
        print(path)
        return 0

    if args.config_cmd == "init":
        if path.exists() and not args.force:
            print(f"{path} already exists; pass --force to overwrite")
            return 1
        save_config(AppConfig(), path)
        print(path)
        return 0

    _print_json(asdict(load_config(path)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="warustatus", description="Multi-rate system status line")
    parser.add_argument("--config", default=None, help="Config file path (default: platform config dir)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Stream status lines to stdout")
    run_cmd.add_argument("--max-lines", type=int, default=None, help="Exit after printing this many lines")
    run_cmd.set_defaults(func=cmd_run)

    once_cmd = sub.add_parser("once", help="Sample everything once and print a single line")
    once_cmd.add_argument("--window", type=float, default=1.0, help="Seconds between rate baseline and sample")
    once_cmd.set_defaults(func=cmd_once)

    doctor_cmd = sub.add_parser("doctor", help="Probe every metric source and print diagnostics")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.add_argument(
        "--window",
        type=float,
        default=2.0,
        help="Seconds to run the scheduler when exporting, to capture its event log (0 skips it)",
    )
    doctor_cmd.set_defaults(func=cmd_doctor)

    config_cmd = sub.add_parser("config", help="Inspect or create the config file")
    config_sub = config_cmd.add_subparsers(dest="config_cmd", required=True)
    config_sub.add_parser("show", help="Print the effective config")
    config_sub.add_parser("path", help="Print the config file location")
    init_cmd = config_sub.add_parser("init", help="Write a default config file")
    init_cmd.add_argument("--force", action="store_true")
    config_cmd.set_defaults(func=cmd_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = _load(args)
    configure_logging(
        keep_files=cfg.diagnostics.keep_log_files,
        console=args.verbose,
        level="DEBUG" if args.verbose else cfg.diagnostics.log_level,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
