from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# Returned by position lookups for keys that have no place on the grid.
UNKNOWN_KEY_INDEX = -1

# Physical key (DOM ``KeyboardEvent.code`` naming) -> character printed on a JIS keycap.
HARDWARE_TO_BASE: Dict[str, str] = {
    **{f"Digit{d}": d for d in "1234567890"},
    **{f"Key{c.upper()}": c for c in "abcdefghijklmnopqrstuvwxyz"},
    "Minus": "-",
    "Equal": "^",
    "IntlYen": "\\",
    "BracketLeft": "@",
    "BracketRight": "[",
    "Semicolon": ";",
    "Quote": ":",
    "Backslash": "]",
    "Comma": ",",
    "Period": ".",
    "Slash": "/",
    "IntlRo": "\\",
    "Space": " ",
}

# Keys whose base character appears more than once on a grid; value is the occurrence to use.
HARDWARE_OCCURRENCE: Dict[str, int] = {"IntlRo": 1}

LEGACY_RO_KEY = "IntlRo"

# JIS shift row, plus the US-only symbols other layouts place on the grid.
SHIFT_SYMBOLS: Dict[str, str] = {
    "1": "!",
    "2": '"',
    "3": "#",
    "4": "$",
    "5": "%",
    "6": "&",
    "7": "'",
    "8": "(",
    "9": ")",
    "-": "=",
    "^": "~",
    "\\": "|",
    "@": "`",
    "[": "{",
    "]": "}",
    ";": "+",
    ":": "*",
    ",": "<",
    ".": ">",
    "/": "?",
    "=": "+",
    "'": '"',
    "`": "~",
}


def apply_shift(char: str, legacy_ro: bool = False) -> str:
    """Character produced by ``char``'s key with shift held."""
    if char == "\\" and legacy_ro:
        return "_"
    if char.isalpha():
        return char.upper()
    return SHIFT_SYMBOLS.get(char, char)


@dataclass(frozen=True)
class LayoutTable:
    name: str
    grid: Tuple[str, ...]

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(len(row) for row in self.grid)

    @property
    def size(self) -> int:
        return sum(self.shape)

    def char_at(self, row: int, col: int) -> str:
        return self.grid[row][col]

    def find(self, char: str, occurrence: int = 0) -> Optional[Tuple[int, int]]:
        """Row/column of ``char`` (case-insensitive).

        Falls back to the first match when the requested occurrence does not exist.
        """
        needle = char.lower()
        hits: List[Tuple[int, int]] = [
            (r, c)
            for r, row in enumerate(self.grid)
            for c, cell in enumerate(row)
            if cell.lower() == needle
        ]
        if not hits:
            return None
        return hits[occurrence] if occurrence < len(hits) else hits[0]

    def flat_index(self, row: int, col: int) -> int:
        return sum(len(r) for r in self.grid[:row]) + col

    def from_flat_index(self, index: int) -> Tuple[int, int]:
        for r, row in enumerate(self.grid):
            if index < len(row):
                return r, index
            index -= len(row)
        raise IndexError("grid index out of range")


class LayoutRepository:
    """Named keyboard layouts loaded from ``data/layouts/*.yaml``.

    Every layout must share the grid shape of the first one so that keys can be
    remapped by position.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path(__file__).resolve().parent.parent / "data" / "layouts"
        self._layouts = self._load_layouts()

    def all(self) -> List[LayoutTable]:
        return list(self._layouts.values())

    def names(self) -> List[str]:
        return list(self._layouts)

    def get(self, name: str) -> LayoutTable:
        return self._layouts[name]

    def default(self) -> LayoutTable:
        return next(iter(self._layouts.values()))

    def _load_layouts(self) -> Dict[str, LayoutTable]:
        if not self._base_dir.exists():
            raise FileNotFoundError(f"Layouts directory not found: {self._base_dir}")

        loaded: List[Tuple[int, LayoutTable]] = []
        for path in sorted(self._base_dir.glob("*.yaml")):
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{path.name}: expected YAML with 'title' and 'rows'")
            title = raw.get("title")
            rows = raw.get("rows")
            if not title or not isinstance(title, str):
                raise ValueError(f"{path.name}: missing or invalid 'title'")
            if not isinstance(rows, list) or not rows:
                raise ValueError(f"{path.name}: missing 'rows'")
            if not all(isinstance(row, str) and row for row in rows):
                raise ValueError(f"{path.name}: every row must be a non-empty string")
            order = raw.get("order", 10**9)
            loaded.append((int(order), LayoutTable(name=title.strip(), grid=tuple(rows))))

        if not loaded:
            raise ValueError(f"No layout files (*.yaml) found in {self._base_dir}")

        loaded.sort(key=lambda item: (item[0], item[1].name))
        layouts: Dict[str, LayoutTable] = {}
        shape = loaded[0][1].shape
        for _, layout in loaded:
            if layout.shape != shape:
                raise ValueError(
                    f"Layout '{layout.name}' has shape {layout.shape}, expected {shape}"
                )
            if layout.name in layouts:
                raise ValueError(f"Duplicate layout name '{layout.name}'")
            layouts[layout.name] = layout
        logger.info("Loaded %d keyboard layouts: %s", len(layouts), ", ".join(layouts))
        return layouts
