"""Single-line text rendering of the current metric snapshot."""

from __future__ import annotations

from collections.abc import Iterable

from warustatus_telemetry.models import UNAVAILABLE, BatteryInfo, ChargeState, CpuLoad, CpuTemp, NetworkRate

from .models import GlyphStyle, StatusSnapshot
from .themes import get_style


BOXCHARS = "▁▂▃▄▅▆▇█"


def bar_char(ratio: float) -> str:
    ratio = max(0.0, min(1.0, ratio))
    return BOXCHARS[int(ratio * (len(BOXCHARS) - 1) + 0.5)]


def core_bars(per_core: Iterable[float]) -> str:
    return "".join(bar_char(pct / 100.0) for pct in per_core)


class StatusLineRenderer:
    """Formats a snapshot as ``mem  net  ip  cpu  temp  battery  clock``."""

    def __init__(
        self,
        style: str | GlyphStyle | None = None,
        core_bars: bool = False,
        net_bars: bool = False,
        net_full_scale_mb_s: float = 10.0,
    ) -> None:
        self.style = style if isinstance(style, GlyphStyle) else get_style(style)
        self.core_bars = core_bars
        self.net_bars = net_bars
        self.net_full_scale_mb_s = max(net_full_scale_mb_s, 1e-6)

    def render(self, snap: StatusSnapshot) -> str:
        parts = [
            f"{snap.memory.available_gb:.1f}",
            self._network(snap.network),
            snap.ip or UNAVAILABLE,
            self._cpu(snap.cpu_load),
            self._temp(snap.cpu_temp),
            self._battery(snap.battery),
            snap.clock,
        ]
        return self.style.separator.join(parts)

    def _network(self, net: NetworkRate) -> str:
        tx = f"{self.style.tx_arrow}{net.tx_mb_s:.1f}"
        rx = f"{self.style.rx_arrow}{net.rx_mb_s:.1f}"
        if self.net_bars:
            tx = bar_char(net.tx_mb_s / self.net_full_scale_mb_s) + tx
            rx = bar_char(net.rx_mb_s / self.net_full_scale_mb_s) + rx
        return f"{tx} {rx}"

    def _cpu(self, load: CpuLoad) -> str:
        text = f"{load.percent:.0f}%"
        if self.core_bars and load.per_core:
            text = f"{text} {core_bars(load.per_core)}"
        return text

    def _temp(self, temp: CpuTemp) -> str:
        if temp.celsius is None:
            return UNAVAILABLE
        return f"{temp.celsius:.1f}{self.style.temp_unit}"

    def _battery(self, battery: BatteryInfo) -> str:
        glyphs = {
            ChargeState.CHARGING: self.style.charging,
            ChargeState.DISCHARGING: self.style.discharging,
            ChargeState.FULL: self.style.full,
            ChargeState.UNKNOWN: self.style.unknown,
        }
        if battery.state not in glyphs:
            return UNAVAILABLE
        return f"{glyphs[battery.state]}{battery.percent}%"
