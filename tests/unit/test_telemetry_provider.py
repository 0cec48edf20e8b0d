import subprocess
import sys
import unittest
from collections import namedtuple
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "telemetry"))

try:
    from warustatus_telemetry import provider
except Exception:  # pragma: no cover
    provider = None

from warustatus_telemetry.models import BatteryInfo, ChargeState, CpuLoad, MemoryInfo, MetricKind

scputimes = namedtuple(
    "scputimes", "user nice system idle iowait irq softirq steal guest guest_nice"
)
snetio = namedtuple("snetio", "bytes_sent bytes_recv")
shwtemp = namedtuple("shwtemp", "label current high critical")
sbattery = namedtuple("sbattery", "percent secsleft power_plugged")
svmem = namedtuple("svmem", "total available")

MIB = 1024 * 1024


def _cpu_sequence(readings):
    """Feed ``psutil.cpu_times`` from a list of (overall, per_core) pairs."""
    overall = iter([r[0] for r in readings])
    cores = iter([r[1] for r in readings])

    def fake(percpu=False):
        return next(cores) if percpu else next(overall)

    return fake


class ProviderTestCase(unittest.TestCase):
    def setUp(self):
        if provider is None:
            self.skipTest("psutil not installed")


class CpuLoadSamplerTests(ProviderTestCase):
    def test_utilisation_over_the_interval(self):
        prev = scputimes(100, 0, 50, 800, 50, 0, 0, 0, 10, 0)
        curr = scputimes(200, 0, 100, 1400, 100, 0, 0, 0, 20, 0)
        fake = _cpu_sequence([(prev, [prev, prev]), (curr, [curr, prev])])
        with patch.object(provider.psutil, "cpu_times", side_effect=fake):
            sampler = provider.CpuLoadSampler()
            load = sampler.sample()

        self.assertIsInstance(load, CpuLoad)
        self.assertAlmostEqual(load.percent, 18.75)
        self.assertEqual(len(load.per_core), 2)
        self.assertAlmostEqual(load.per_core[0], 18.75)
        self.assertEqual(load.per_core[1], 0.0)

    def test_idle_interval_reads_zero(self):
        same = scputimes(100, 0, 50, 800, 50, 0, 0, 0, 0, 0)
        fake = _cpu_sequence([(same, [same]), (same, [same])])
        with patch.object(provider.psutil, "cpu_times", side_effect=fake):
            load = provider.CpuLoadSampler().sample()
        self.assertEqual(load.percent, 0.0)
        self.assertEqual(load.per_core, (0.0,))

    def test_core_count_change_drops_per_core_view(self):
        prev = scputimes(100, 0, 50, 800, 50, 0, 0, 0, 0, 0)
        curr = scputimes(200, 0, 50, 900, 50, 0, 0, 0, 0, 0)
        fake = _cpu_sequence([(prev, [prev]), (curr, [curr, curr])])
        with patch.object(provider.psutil, "cpu_times", side_effect=fake):
            load = provider.CpuLoadSampler().sample()
        self.assertAlmostEqual(load.percent, 50.0)
        self.assertEqual(load.per_core, ())


class NetworkRateSamplerTests(ProviderTestCase):
    def test_rates_exclude_loopback(self):
        readings = iter(
            [
                {"lo": snetio(1000, 1000), "eth0": snetio(0, 0)},
                {"lo": snetio(50 * MIB, 50 * MIB), "eth0": snetio(2 * MIB, 4 * MIB)},
            ]
        )
        times = iter([0.0, 2.0])
        with patch.object(provider.psutil, "net_io_counters", side_effect=lambda pernic: next(readings)):
            sampler = provider.NetworkRateSampler(clock=lambda: next(times))
            rate = sampler.sample()

        self.assertAlmostEqual(rate.rx_mb_s, 2.0)
        self.assertAlmostEqual(rate.tx_mb_s, 1.0)

    def test_counter_reset_clamps_to_zero(self):
        readings = iter([{"wlan0": snetio(5 * MIB, 5 * MIB)}, {"wlan0": snetio(0, 1 * MIB)}])
        times = iter([0.0, 1.0])
        with patch.object(provider.psutil, "net_io_counters", side_effect=lambda pernic: next(readings)):
            rate = provider.NetworkRateSampler(clock=lambda: next(times)).sample()
        self.assertEqual(rate.rx_mb_s, 0.0)
        self.assertEqual(rate.tx_mb_s, 0.0)

    def test_back_to_back_samples_use_minimum_interval(self):
        readings = iter([{"eth0": snetio(0, 0)}, {"eth0": snetio(0, MIB)}])
        with patch.object(provider.psutil, "net_io_counters", side_effect=lambda pernic: next(readings)):
            rate = provider.NetworkRateSampler(clock=lambda: 5.0).sample()
        self.assertAlmostEqual(rate.rx_mb_s, 10.0)


class SensorReaderTests(ProviderTestCase):
    def test_cpu_temp_uses_hottest_cpu_sensor(self):
        temps = {
            "nvme": [shwtemp("Composite", 70.0, None, None)],
            "coretemp": [shwtemp("Package id 0", 55.0, 80.0, 100.0), shwtemp("Core 0", 61.5, 80.0, 100.0)],
        }
        with patch.object(provider.psutil, "sensors_temperatures", return_value=temps, create=True):
            self.assertEqual(provider.read_cpu_temp().celsius, 61.5)

    def test_cpu_temp_unavailable(self):
        with patch.object(provider.psutil, "sensors_temperatures", return_value={"nvme": []}, create=True):
            self.assertFalse(provider.read_cpu_temp().available)
        with patch.object(provider.psutil, "sensors_temperatures", side_effect=AttributeError, create=True):
            self.assertIsNone(provider.read_cpu_temp().celsius)

    def test_memory_is_reported_in_mib(self):
        with patch.object(provider.psutil, "virtual_memory", return_value=svmem(16 * 1024 * MIB, 3 * 1024 * MIB + 100)):
            mem = provider.read_memory()
        self.assertEqual(mem, MemoryInfo(available_mb=3072))
        self.assertEqual(mem.available_gb, 3.0)

    def test_battery_states(self):
        cases = [
            (None, BatteryInfo.unavailable()),
            (sbattery(100.0, -2, True), BatteryInfo(100, ChargeState.FULL)),
            (sbattery(50.0, -2, True), BatteryInfo(50, ChargeState.CHARGING)),
            (sbattery(42.4, 3600, False), BatteryInfo(42, ChargeState.DISCHARGING)),
            (sbattery(77.0, -1, None), BatteryInfo(77, ChargeState.UNKNOWN)),
        ]
        for reading, expected in cases:
            with patch.object(provider.psutil, "sensors_battery", return_value=reading, create=True):
                self.assertEqual(provider.read_battery(), expected)

    def test_clock_uses_format(self):
        self.assertEqual(provider.read_clock("%Y"), str(datetime.now().year))


class IpAddressTests(ProviderTestCase):
    ROUTE = "8.8.8.8 via 192.168.1.1 dev wlan0 src 192.168.1.23 uid 1000 \n    cache \n"

    def test_parses_source_address(self):
        done = subprocess.CompletedProcess(["ip"], 0, stdout=self.ROUTE, stderr="")
        with patch.object(provider.shutil, "which", return_value="/usr/sbin/ip"), patch.object(
            provider.subprocess, "run", return_value=done
        ) as run:
            self.assertEqual(provider.read_ip_address(), "192.168.1.23")
        self.assertEqual(run.call_args.args[0], ["ip", "route", "get", "8.8.8.8"])

    def test_no_route_is_unavailable(self):
        done = subprocess.CompletedProcess(["ip"], 2, stdout="", stderr="RTNETLINK answers: Network is unreachable")
        with patch.object(provider.shutil, "which", return_value="/usr/sbin/ip"), patch.object(
            provider.subprocess, "run", return_value=done
        ):
            self.assertEqual(provider.read_ip_address(), "N/A")

    def test_timeout_is_a_sample_error(self):
        with patch.object(provider.shutil, "which", return_value="/usr/sbin/ip"), patch.object(
            provider.subprocess, "run", side_effect=subprocess.TimeoutExpired(["ip"], 5.0)
        ):
            with self.assertRaises(provider.SampleError):
                provider.read_ip_address(timeout_s=5.0)

    def test_falls_back_to_socket_without_ip_tool(self):
        with patch.object(provider.shutil, "which", return_value=None), patch.object(
            provider, "_ip_via_socket", return_value="10.0.0.5"
        ) as probe:
            self.assertEqual(provider.read_ip_address("1.1.1.1"), "10.0.0.5")
        probe.assert_called_once_with("1.1.1.1")


class MetricSourcesTests(ProviderTestCase):
    def test_builds_one_source_per_kind(self):
        sources = provider.build_metric_sources()
        self.assertEqual(set(sources), set(MetricKind))
        self.assertGreater(sources[MetricKind.MEMORY]().available_mb, 0)
        self.assertGreaterEqual(sources[MetricKind.CPU_LOAD]().percent, 0.0)


if __name__ == "__main__":
    unittest.main()
