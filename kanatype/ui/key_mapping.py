"""QKeyEvent -> KeyEvent conversion.

Physical position comes from the native scan code where the platform exposes a
known one; otherwise the produced text is mapped back to the JIS key that
prints it.
"""

from __future__ import annotations

import sys
from typing import Dict, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QKeyEvent

from kanatype.core.key_source import KeyEvent
from kanatype.core.layouts import HARDWARE_TO_BASE, SHIFT_SYMBOLS
from kanatype.core.session import EXIT_KEY

_LETTER_ROWS = ("qwertyuiop", "asdfghjkl", "zxcvbnm")

# xkb keycodes (evdev code + 8), X11 and Wayland.
_XKB_CODES: Dict[int, str] = {
    9: "Escape",
    **{10 + i: f"Digit{d}" for i, d in enumerate("1234567890")},
    20: "Minus",
    21: "Equal",
    **{24 + i: f"Key{c.upper()}" for i, c in enumerate(_LETTER_ROWS[0])},
    34: "BracketLeft",
    35: "BracketRight",
    **{38 + i: f"Key{c.upper()}" for i, c in enumerate(_LETTER_ROWS[1])},
    47: "Semicolon",
    48: "Quote",
    51: "Backslash",
    **{52 + i: f"Key{c.upper()}" for i, c in enumerate(_LETTER_ROWS[2])},
    59: "Comma",
    60: "Period",
    61: "Slash",
    65: "Space",
    97: "IntlRo",
    132: "IntlYen",
}

# PC/AT set-1 scan codes as reported on Windows.
_WINDOWS_CODES: Dict[int, str] = {
    0x01: "Escape",
    **{0x02 + i: f"Digit{d}" for i, d in enumerate("1234567890")},
    0x0C: "Minus",
    0x0D: "Equal",
    **{0x10 + i: f"Key{c.upper()}" for i, c in enumerate(_LETTER_ROWS[0])},
    0x1A: "BracketLeft",
    0x1B: "BracketRight",
    **{0x1E + i: f"Key{c.upper()}" for i, c in enumerate(_LETTER_ROWS[1])},
    0x27: "Semicolon",
    0x28: "Quote",
    0x2B: "Backslash",
    **{0x2C + i: f"Key{c.upper()}" for i, c in enumerate(_LETTER_ROWS[2])},
    0x33: "Comma",
    0x34: "Period",
    0x35: "Slash",
    0x39: "Space",
    0x73: "IntlRo",
    0x7D: "IntlYen",
}

# JIS character -> key that prints it, for platforms without usable scan codes.
_TEXT_CODES: Dict[str, str] = {}
for _code, _base in HARDWARE_TO_BASE.items():
    _TEXT_CODES.setdefault(_base, _code)
    if _base in SHIFT_SYMBOLS:
        _TEXT_CODES.setdefault(SHIFT_SYMBOLS[_base], _code)
_TEXT_CODES["_"] = "IntlRo"


def native_code(scan_code: int, platform: str = sys.platform) -> Optional[str]:
    if platform.startswith("linux"):
        return _XKB_CODES.get(scan_code)
    if platform.startswith("win"):
        return _WINDOWS_CODES.get(scan_code)
    return None


def text_code(text: str) -> Optional[str]:
    if not text:
        return None
    return _TEXT_CODES.get(text) or _TEXT_CODES.get(text.lower())


def to_key_event(event: QKeyEvent) -> Optional[KeyEvent]:
    """None for keys the session has no use for (modifiers, function keys)."""
    shift = bool(event.modifiers() & Qt.ShiftModifier)
    if event.key() == Qt.Key_Escape:
        return KeyEvent(EXIT_KEY, shift)
    code = native_code(event.nativeScanCode())
    if code is None:
        if event.key() == Qt.Key_Space:
            code = "Space"
        else:
            code = text_code(event.text())
    if code is None:
        return None
    return KeyEvent(code, shift)
