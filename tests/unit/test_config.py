import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))
sys.path.insert(0, str(ROOT / "packages" / "renderer"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from warustatus_core.config import CONFIG_ENV, AppConfig, config_path, load_config, save_config
from warustatus_telemetry.models import MetricKind


class ConfigTests(unittest.TestCase):
    def test_load_default_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "missing.json"
            cfg = load_config(path)
            self.assertIsInstance(cfg, AppConfig)
            self.assertEqual(cfg.scheduler.base_tick_ms, 500)
            self.assertEqual(cfg.scheduler.cadences["battery"], 3600)
            self.assertEqual(cfg.display.style, "unicode")
            self.assertEqual(cfg.network.exclude_prefixes, ["lo"])
            self.assertTrue(cfg.alerts.enabled)

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            cfg = load_config(path)
            cfg.scheduler.cadences["network"] = 5
            cfg.display.style = "plain"
            cfg.alerts.memory_min_mb = 1024
            save_config(cfg, path)
            reloaded = load_config(path)
            self.assertEqual(reloaded.scheduler.cadences["network"], 5)
            self.assertEqual(reloaded.display.style, "plain")
            self.assertEqual(reloaded.alerts.memory_min_mb, 1024)
            self.assertEqual(reloaded.scheduler.cadence_table()[MetricKind.NETWORK], 5)

    def test_partial_file_keeps_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {
                "scheduler": {"cadences": {"memory": 20, "ip": 0, "bogus": 3, "clock": True}},
                "display": {"style": "neon", "core_bars": 1},
            }
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.scheduler.cadences["memory"], 20)
            self.assertEqual(cfg.scheduler.cadences["ip"], 60)
            self.assertEqual(cfg.scheduler.cadences["clock"], 60)
            self.assertNotIn("bogus", cfg.scheduler.cadences)
            self.assertEqual(cfg.display.style, "unicode")
            self.assertIs(cfg.display.core_bars, True)

    def test_base_tick_is_clamped(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"scheduler": {"base_tick_ms": 10_000}}), encoding="utf-8")
            self.assertEqual(load_config(path).scheduler.base_tick_ms, 2000)
            path.write_text(json.dumps({"scheduler": {"base_tick_ms": 1}}), encoding="utf-8")
            self.assertEqual(load_config(path).scheduler.base_tick_ms, 50)

    def test_unreadable_file_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertLogs("warustatus.config", level="WARNING"):
                cfg = load_config(path)
            self.assertEqual(cfg.scheduler.base_tick_ms, 500)

    def test_alert_thresholds_are_ordered(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {"alerts": {"battery_low_percent": 10, "battery_critical_percent": 40, "cpu_percent_max": 500}}
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.alerts.battery_critical_percent, 10)
            self.assertEqual(cfg.alerts.cpu_percent_max, 100.0)

    def test_non_numeric_values_fall_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {
                "scheduler": {"base_tick_ms": "fast"},
                "display": {"net_bar_full_scale_mb_s": [1]},
                "alerts": {
                    "cpu_percent_max": "high",
                    "memory_min_mb": None,
                    "battery_low_percent": {"x": 1},
                    "battery_critical_percent": "6",
                },
                "diagnostics": {"keep_log_files": "lots", "log_level": "chatty"},
            }
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.scheduler.base_tick_ms, 500)
            self.assertEqual(cfg.display.net_bar_full_scale_mb_s, 10.0)
            self.assertEqual(cfg.alerts.cpu_percent_max, 90.0)
            self.assertEqual(cfg.alerts.memory_min_mb, 2000)
            self.assertEqual(cfg.alerts.battery_low_percent, 15)
            self.assertEqual(cfg.alerts.battery_critical_percent, 6)
            self.assertEqual(cfg.diagnostics.keep_log_files, 7)
            self.assertEqual(cfg.diagnostics.log_level, "INFO")

    def test_env_override_for_config_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "alt.json"
            with patch.dict(os.environ, {CONFIG_ENV: str(target)}):
                self.assertEqual(config_path(), target)


if __name__ == "__main__":
    unittest.main()
