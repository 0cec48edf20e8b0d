"""Built-in glyph styles for the status line."""

from __future__ import annotations

from .models import GlyphStyle

DEFAULT_STYLE_NAME = "unicode"

STYLES: dict[str, GlyphStyle] = {
    "unicode": GlyphStyle(
        name="unicode",
        charging="⚡",
        discharging="🔋",
        full="🔌",
        unknown="?",
        tx_arrow="↑",
        rx_arrow="↓",
        temp_unit="°C",
    ),
    "plain": GlyphStyle(
        name="plain",
        charging="+",
        discharging="-",
        full="=",
        unknown="?",
        tx_arrow="-",
        rx_arrow="+",
        temp_unit="C",
    ),
}


def list_styles() -> list[str]:
    return sorted(STYLES.keys())


def get_style(name: str | None) -> GlyphStyle:
    if not name:
        return STYLES[DEFAULT_STYLE_NAME]
    return STYLES.get(name, STYLES[DEFAULT_STYLE_NAME])
