"""Theme colors and color utilities for the UI."""

from typing import Dict


class Palette:
    """Light theme shared by the home, typing and result screens."""

    BG_TOP = "#fdf6ec"
    BG_BOTTOM = "#f3e3cf"

    PRIMARY = "#c0392b"
    PRIMARY_LIGHT = "#e57368"
    PRIMARY_DARK = "#7b241c"

    HIT = "#2f855a"
    MISS = "#d64545"
    COMBO = "#ffb74d"

    CARD_BG = "rgba(255, 255, 255, 0.85)"
    CARD_BORDER = "rgba(123, 36, 28, 0.18)"

    TEXT_PRIMARY = "#2b1d16"
    TEXT_SECONDARY = "#5d4037"
    TEXT_MUTED = "#a1887f"

    KEY_BG = "#fffaf3"
    KEY_BORDER = "#d7ccc8"


# Finger zones by grid column (left pinky .. right pinky), used to tint keycaps.
FINGER_COLORS = (
    "#5C96EB",
    "#5C96EB",
    "#EF6060",
    "#2ECC71",
    "#7A5CEB",
    "#7A5CEB",
    "#FF953D",
    "#FF953D",
    "#2ECC71",
    "#EF6060",
    "#5C96EB",
    "#5C96EB",
    "#5C96EB",
)
THUMB_COLOR = "#EB78D2"


def _parse_hex(value: str):
    value = value.strip()
    if not (value.startswith("#") and len(value) == 7):
        raise ValueError(f"not a #RRGGBB color: {value!r}")
    return int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16)


def blend_hex(a: str, b: str, t: float) -> str:
    """Blend two #RRGGBB colors. t=0 -> a, t=1 -> b.

    Anything that is not a #RRGGBB pair is returned as ``a`` unchanged.
    """
    try:
        ar, ag, ab = _parse_hex(a)
        br, bg, bb = _parse_hex(b)
    except ValueError:
        return a.strip()
    t = max(0.0, min(1.0, float(t)))
    r = int(ar + (br - ar) * t)
    g = int(ag + (bg - ag) * t)
    bl = int(ab + (bb - ab) * t)
    return f"#{r:02X}{g:02X}{bl:02X}"


def darken_hex(color: str, factor: float) -> str:
    """Scale each channel by ``factor`` (0-1)."""
    try:
        r, g, b = _parse_hex(color)
    except ValueError:
        return color
    factor = max(0.0, min(1.0, factor))
    return f"#{int(r * factor):02X}{int(g * factor):02X}{int(b * factor):02X}"


def finger_color(row: int, col: int, row_count: int) -> str:
    if row == row_count - 1:
        return THUMB_COLOR
    return FINGER_COLORS[min(col, len(FINGER_COLORS) - 1)]


def key_colors(row: int, col: int, row_count: int) -> Dict[str, str]:
    """Fill and highlight-border colors for the keycap at ``row``/``col``."""
    base = finger_color(row, col, row_count)
    return {
        "fill": blend_hex(base, Palette.KEY_BG, 0.78),
        "border": darken_hex(base, 0.55),
    }
