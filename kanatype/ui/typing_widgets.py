"""Typing screen widgets: romaji hint strip, phrase card and HUD tiles."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QFontMetrics, QPainter
from PySide6.QtWidgets import QFrame, QLabel, QVBoxLayout, QWidget

from kanatype.ui.colors import Palette, blend_hex


class RomajiHintWidget(QWidget):
    """Best-guess romanization: typed part solid, remainder muted, next letter underlined."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._hint = ""
        self._typed = ""
        self._missed = False
        self.setFixedHeight(56)
        self.setMinimumWidth(200)

    def set_state(self, hint: str, typed: str, missed: bool = False) -> None:
        self._hint = hint
        self._typed = typed
        self._missed = missed
        self.update()

    def paintEvent(self, event) -> None:
        super().paintEvent(event)
        if not self._hint:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        font = painter.font()
        font.setPointSize(22)
        font.setFamily("monospace")
        painter.setFont(font)
        metrics = QFontMetrics(font)

        # The hint always extends what was typed; fall back to showing typed alone.
        done = len(self._typed) if self._hint.startswith(self._typed) else 0
        total = metrics.horizontalAdvance(self._hint)
        x = max(0, (self.width() - total) // 2)
        baseline = (self.height() + metrics.ascent() - metrics.descent()) // 2
        muted = QColor(blend_hex(Palette.TEXT_PRIMARY, Palette.BG_TOP, 0.6))

        for i, char in enumerate(self._hint):
            if i < done:
                painter.setPen(QColor(Palette.HIT))
            elif i == done:
                painter.setPen(QColor(Palette.MISS if self._missed else Palette.PRIMARY))
            else:
                painter.setPen(muted)
            painter.drawText(x, baseline, char)
            advance = metrics.horizontalAdvance(char)
            if i == done:
                painter.drawLine(x, baseline + 4, x + advance, baseline + 4)
            x += advance


class PhraseCard(QFrame):
    """Display text on top, kana reading below."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("phraseCard")
        self.setStyleSheet(
            f"""
            QFrame#phraseCard {{
                background: {Palette.CARD_BG};
                border: 1px solid {Palette.CARD_BORDER};
                border-radius: 18px;
            }}
            """
        )
        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 18, 24, 18)
        self._text_label = QLabel()
        self._text_label.setAlignment(Qt.AlignCenter)
        self._text_label.setStyleSheet(f"font-size: 34px; font-weight: 700; color: {Palette.TEXT_PRIMARY};")
        self._reading_label = QLabel()
        self._reading_label.setAlignment(Qt.AlignCenter)
        self._reading_label.setStyleSheet(f"font-size: 18px; color: {Palette.TEXT_SECONDARY};")
        layout.addWidget(self._text_label)
        layout.addWidget(self._reading_label)

    def set_phrase(self, text: str, reading: str) -> None:
        self._text_label.setText(text)
        self._reading_label.setText(reading)


class StatTile(QFrame):
    def __init__(self, title: str, accent: str = Palette.PRIMARY, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setObjectName("statTile")
        self.setStyleSheet(
            f"""
            QFrame#statTile {{
                background: {Palette.CARD_BG};
                border: 1px solid {Palette.CARD_BORDER};
                border-radius: 12px;
            }}
            """
        )
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(2)
        caption = QLabel(title)
        caption.setStyleSheet(f"font-size: 11px; color: {Palette.TEXT_MUTED};")
        self._value = QLabel("-")
        self._value.setStyleSheet(f"font-size: 20px; font-weight: 700; color: {accent};")
        layout.addWidget(caption)
        layout.addWidget(self._value)

    def set_value(self, text: str) -> None:
        self._value.setText(text)
