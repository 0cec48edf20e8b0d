"""Text rendering for the warustatus status line."""

from .models import GlyphStyle, StatusSnapshot
from .statusline import BOXCHARS, StatusLineRenderer, bar_char, core_bars
from .themes import DEFAULT_STYLE_NAME, get_style, list_styles

__all__ = [
    "BOXCHARS",
    "DEFAULT_STYLE_NAME",
    "GlyphStyle",
    "StatusLineRenderer",
    "StatusSnapshot",
    "bar_char",
    "core_bars",
    "get_style",
    "list_styles",
]
