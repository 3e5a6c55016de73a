"""Physical key -> logical character translation between keyboard layouts.

A hardware code names a physical key position. The key's JIS keycap
character is looked up on the *source* layout grid, and the character at the
same row/column of the *target* layout is what the player meant to type.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from kanatype.core.layouts import (
    HARDWARE_OCCURRENCE,
    HARDWARE_TO_BASE,
    LEGACY_RO_KEY,
    SHIFT_SYMBOLS,
    UNKNOWN_KEY_INDEX,
    LayoutTable,
    apply_shift,
)

_UNSHIFT_SYMBOLS: Dict[str, List[str]] = {}
for _base, _shifted in SHIFT_SYMBOLS.items():
    _UNSHIFT_SYMBOLS.setdefault(_shifted, []).append(_base)


def _source_position(
    hardware_code: str, source: LayoutTable
) -> Tuple[Optional[str], Optional[Tuple[int, int]]]:
    base = HARDWARE_TO_BASE.get(hardware_code)
    if base is None:
        return None, None
    return base, source.find(base, HARDWARE_OCCURRENCE.get(hardware_code, 0))


def translate(
    hardware_code: str,
    shift: bool,
    source: LayoutTable,
    target: LayoutTable,
) -> Optional[str]:
    """Character typed by ``hardware_code`` when remapped from ``source`` to ``target``.

    Returns None for keys that are not typing keys (modifiers, function keys)
    or whose keycap is not on the source grid.
    """
    base, position = _source_position(hardware_code, source)
    if base is None or position is None:
        return None
    char = target.char_at(*position)
    if base.islower() and char.isalpha() and char.isupper():
        char = char.lower()
    if shift:
        char = apply_shift(char, legacy_ro=hardware_code == LEGACY_RO_KEY)
    return char


def position_index(hardware_code: str, source: LayoutTable) -> int:
    """Flat grid index of the physical key, for highlighting."""
    _, position = _source_position(hardware_code, source)
    if position is None:
        return UNKNOWN_KEY_INDEX
    return source.flat_index(*position)


def _locate(char: str, layout: LayoutTable) -> Tuple[Optional[Tuple[int, int]], bool]:
    position = layout.find(char)
    if position is not None:
        return position, char.isalpha() and char.isupper()
    if char == "_":
        return layout.find("\\", HARDWARE_OCCURRENCE[LEGACY_RO_KEY]), True
    for base in _UNSHIFT_SYMBOLS.get(char, ()):
        position = layout.find(base)
        if position is not None:
            return position, True
    return None, False


def locate_char(char: str, layout: LayoutTable) -> int:
    """Flat grid index of the key that produces ``char`` on ``layout``.

    Shifted symbols resolve to the key they are shifted from; ``_`` resolves to
    the Ro key.
    """
    position, _ = _locate(char, layout)
    if position is None:
        return UNKNOWN_KEY_INDEX
    return layout.flat_index(*position)


def needs_shift(char: str, layout: LayoutTable) -> bool:
    """Whether ``char`` is produced with shift held on ``layout``."""
    _, shifted = _locate(char, layout)
    return shifted
