"""On-screen keyboard of the target layout."""

from __future__ import annotations

import html
from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import QApplication, QGridLayout, QLabel, QWidget

from kanatype.core.layouts import LayoutTable
from kanatype.ui.colors import Palette, key_colors

# Each grid row is shifted right by this many half-key units, like a physical board.
_ROW_OFFSETS = (0, 1, 2, 3, 8)
_SPACE_SPAN = 12


class VirtualKeyboard(QWidget):
    """Keycaps laid out on a ``QGridLayout``; keys are addressed by flat grid index."""

    def __init__(self, layout: LayoutTable, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._layout_table = layout
        self._labels: List[QLabel] = []
        self._base_styles: Dict[int, str] = {}
        self._highlighted: List[int] = []
        self._flash_index: Optional[int] = None
        self._font_px = 18
        self._flash_timer = QTimer(self)
        self._flash_timer.setSingleShot(True)
        self._flash_timer.timeout.connect(self._end_flash)
        self._grid = QGridLayout(self)
        self._grid.setSpacing(6)
        self._grid.setContentsMargins(0, 0, 0, 0)
        self.setStyleSheet("background: transparent;")
        self._build()

    def set_layout_table(self, layout: LayoutTable) -> None:
        if layout == self._layout_table:
            return
        self._layout_table = layout
        self._build()

    def highlight(self, indices: Iterable[int]) -> None:
        """Outline the keys that produce one of the expected characters."""
        for index in self._highlighted:
            self._restyle(index)
        self._highlighted = [i for i in indices if 0 <= i < len(self._labels)]
        for index in self._highlighted:
            self._restyle(index)

    def flash_miss(self, index: int, duration_ms: int = 180) -> None:
        if not 0 <= index < len(self._labels):
            return
        previous = self._flash_index
        self._flash_index = index
        if previous is not None and previous != index:
            self._restyle(previous)
        self._restyle(index)
        self._flash_timer.start(duration_ms)

    def _end_flash(self) -> None:
        index, self._flash_index = self._flash_index, None
        if index is not None:
            self._restyle(index)

    def _build(self) -> None:
        while self._grid.count():
            item = self._grid.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
        self._labels = []
        self._base_styles = {}
        self._highlighted = []
        self._flash_index = None

        rows = self._layout_table.grid
        for row_index, row in enumerate(rows):
            offset = _ROW_OFFSETS[min(row_index, len(_ROW_OFFSETS) - 1)]
            for col_index, char in enumerate(row):
                label = QLabel()
                label.setAlignment(Qt.AlignCenter)
                label.setMinimumHeight(44)
                label.setText(html.escape(char.upper() if char != " " else "Space"))
                index = len(self._labels)
                self._labels.append(label)
                self._base_styles[index] = self._key_style(row_index, col_index, highlighted=False)
                label.setStyleSheet(self._base_styles[index])
                span = _SPACE_SPAN if char == " " else 2
                self._grid.addWidget(label, row_index, offset + col_index * 2, 1, span)

        columns = max(_ROW_OFFSETS[min(r, len(_ROW_OFFSETS) - 1)] + len(row) * 2 for r, row in enumerate(rows))
        for column in range(columns):
            self._grid.setColumnStretch(column, 1)

    def _restyle(self, index: int) -> None:
        if not 0 <= index < len(self._labels):
            return
        row, col = self._layout_table.from_flat_index(index)
        if index == self._flash_index:
            style = self._key_style(row, col, highlighted=True, border_color=Palette.MISS)
        elif index in self._highlighted:
            style = self._key_style(row, col, highlighted=True)
        else:
            style = self._base_styles[index]
        self._labels[index].setStyleSheet(style)

    def _key_style(
        self,
        row: int,
        col: int,
        *,
        highlighted: bool,
        border_color: Optional[str] = None,
    ) -> str:
        colors = key_colors(row, col, len(self._layout_table.grid))
        if highlighted:
            border = f"4px solid {border_color or colors['border']}"
        else:
            border = f"1px solid {Palette.KEY_BORDER}"
        return f"""
            QLabel {{
                background: {colors['fill']};
                color: {Palette.TEXT_PRIMARY};
                border: {border};
                border-radius: 6px;
                padding: 8px 6px;
                font-family: '{QApplication.font().family()}', sans-serif;
                font-size: {self._font_px}px;
                font-weight: 500;
            }}
        """
