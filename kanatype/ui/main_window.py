from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional

from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtGui import QCloseEvent, QKeyEvent
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QFrame,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSpinBox,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from kanatype.core.key_source import KeyEventSource
from kanatype.core.layouts import LayoutRepository, LayoutTable
from kanatype.core.modes import GameMode, all_modes
from kanatype.core.phrases import PhraseRepository
from kanatype.core.predictor import NextKeyPredictor
from kanatype.core.progress import ProgressStore
from kanatype.core.resolver import SpellingResolver
from kanatype.core.romanization import RomanizationTable
from kanatype.core.session import (
    AbortReason,
    EventKind,
    Listener,
    SessionEvent,
    SessionSnapshot,
    SessionState,
    SessionSummary,
    TypingSession,
)
from kanatype.core.translator import locate_char
from kanatype.ui.colors import Palette
from kanatype.ui.key_mapping import to_key_event
from kanatype.ui.keyboard_widget import VirtualKeyboard
from kanatype.ui.session_bridge import SessionBridge
from kanatype.ui.typing_widgets import PhraseCard, RomajiHintWidget, StatTile

logger = logging.getLogger(__name__)

RANKING_ROWS = 10


class MainWindow(QMainWindow):
    """Home screen (modes, layouts, ranking), typing screen and result screen."""

    def __init__(
        self,
        table: RomanizationTable,
        layouts: LayoutRepository,
        phrases: PhraseRepository,
        progress_store: ProgressStore,
    ) -> None:
        super().__init__()
        self._table = table
        self._layouts = layouts
        self._phrases = phrases
        self._progress_store = progress_store
        self._rng = random.Random()
        self._bridge = SessionBridge(self)
        self._bridge.event.connect(self._on_session_event)
        self._bridge.finished.connect(self._on_session_finished)
        self._bridge.failed.connect(self._on_session_failed)
        self._current_mode: Optional[GameMode] = None

        self._stack: Optional[QStackedWidget] = None
        self._home_screen: Optional[QWidget] = None
        self._typing_screen: Optional[QWidget] = None
        self._result_screen: Optional[QWidget] = None

        self._source_combo: Optional[QComboBox] = None
        self._target_combo: Optional[QComboBox] = None
        self._speed_spin: Optional[QSpinBox] = None
        self._single_n_check: Optional[QCheckBox] = None
        self._ranking_label: Optional[QLabel] = None
        self._keystrokes_label: Optional[QLabel] = None

        self._mode_label: Optional[QLabel] = None
        self._status_label: Optional[QLabel] = None
        self._phrase_card: Optional[PhraseCard] = None
        self._hint_widget: Optional[RomajiHintWidget] = None
        self._next_label: Optional[QLabel] = None
        self._keyboard: Optional[VirtualKeyboard] = None
        self._tiles: Dict[str, StatTile] = {}

        self._result_title: Optional[QLabel] = None
        self._result_body: Optional[QLabel] = None

        self._build_ui()
        self._refresh_home()
        QApplication.instance().installEventFilter(self)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _build_ui(self) -> None:
        self.setWindowTitle("Kanatype - romaji typing practice")
        self.setMinimumSize(1100, 760)
        self.setStyleSheet(
            f"""
            QMainWindow {{
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 {Palette.BG_TOP}, stop:1 {Palette.BG_BOTTOM});
            }}
            QLabel {{ color: {Palette.TEXT_PRIMARY}; }}
            QPushButton {{
                background: {Palette.CARD_BG};
                border: 1px solid {Palette.CARD_BORDER};
                border-radius: 10px;
                padding: 10px 16px;
                font-size: 15px;
            }}
            QPushButton:hover {{ border-color: {Palette.PRIMARY}; }}
            """
        )
        self._stack = QStackedWidget()
        self._home_screen = self._build_home_screen()
        self._typing_screen = self._build_typing_screen()
        self._result_screen = self._build_result_screen()
        for screen in (self._home_screen, self._typing_screen, self._result_screen):
            self._stack.addWidget(screen)
        self.setCentralWidget(self._stack)

    def _build_home_screen(self) -> QWidget:
        screen = QWidget()
        layout = QHBoxLayout(screen)
        layout.setContentsMargins(40, 32, 40, 32)
        layout.setSpacing(32)

        left = QVBoxLayout()
        title = QLabel("Kanatype")
        title.setStyleSheet(f"font-size: 40px; font-weight: 800; color: {Palette.PRIMARY_DARK};")
        left.addWidget(title)
        subtitle = QLabel("Type the kana reading in romaji. Press Space to start, Esc to quit.")
        subtitle.setStyleSheet(f"color: {Palette.TEXT_SECONDARY}; font-size: 14px;")
        left.addWidget(subtitle)

        modes = QGridLayout()
        for i, mode in enumerate(all_modes()):
            button = QPushButton(f"{mode.name}\n{mode.issue_count} phrases")
            button.setMinimumHeight(64)
            button.clicked.connect(lambda _=False, m=mode: self._start_mode(m))
            modes.addWidget(button, i // 2, i % 2)
        left.addLayout(modes)
        left.addStretch(1)
        layout.addLayout(left, 3)

        right = QVBoxLayout()
        settings = QFrame()
        settings.setObjectName("settingsCard")
        settings.setStyleSheet(
            f"QFrame#settingsCard {{ background: {Palette.CARD_BG}; border-radius: 16px; }}"
        )
        form = QGridLayout(settings)
        names = self._layouts.names()
        self._source_combo = QComboBox()
        self._source_combo.addItems(names)
        self._target_combo = QComboBox()
        self._target_combo.addItems(names)
        self._speed_spin = QSpinBox()
        self._speed_spin.setRange(2, 100)
        self._single_n_check = QCheckBox("Accept a single n for a final ん")
        form.addWidget(QLabel("Physical keyboard"), 0, 0)
        form.addWidget(self._source_combo, 0, 1)
        form.addWidget(QLabel("Practice layout"), 1, 0)
        form.addWidget(self._target_combo, 1, 1)
        form.addWidget(QLabel("Speed window (keys)"), 2, 0)
        form.addWidget(self._speed_spin, 2, 1)
        form.addWidget(self._single_n_check, 3, 0, 1, 2)
        right.addWidget(settings)

        self._keystrokes_label = QLabel()
        self._keystrokes_label.setStyleSheet(f"color: {Palette.TEXT_SECONDARY};")
        right.addWidget(self._keystrokes_label)
        ranking_title = QLabel("Local ranking")
        ranking_title.setStyleSheet("font-size: 18px; font-weight: 700;")
        right.addWidget(ranking_title)
        self._ranking_label = QLabel()
        self._ranking_label.setTextFormat(Qt.RichText)
        self._ranking_label.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        right.addWidget(self._ranking_label, 1)
        layout.addLayout(right, 2)

        self._source_combo.currentTextChanged.connect(self._on_settings_changed)
        self._target_combo.currentTextChanged.connect(self._on_settings_changed)
        self._speed_spin.valueChanged.connect(self._on_settings_changed)
        self._single_n_check.toggled.connect(self._on_settings_changed)
        return screen

    def _build_typing_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)
        layout.setContentsMargins(40, 24, 40, 24)
        layout.setSpacing(16)

        header = QHBoxLayout()
        back = QPushButton("Back")
        back.setFocusPolicy(Qt.NoFocus)
        back.clicked.connect(self._leave_typing_screen)
        header.addWidget(back)
        self._mode_label = QLabel()
        self._mode_label.setStyleSheet("font-size: 18px; font-weight: 700;")
        header.addWidget(self._mode_label)
        header.addStretch(1)
        layout.addLayout(header)

        hud = QHBoxLayout()
        for key, title, accent in (
            ("score", "Score", Palette.PRIMARY),
            ("combo", "Combo", Palette.COMBO),
            ("kpm", "Keys/min", Palette.PRIMARY_DARK),
            ("speed", "Now (keys/s)", Palette.PRIMARY_DARK),
            ("accuracy", "Accuracy", Palette.HIT),
            ("progress", "Phrase", Palette.TEXT_SECONDARY),
        ):
            tile = StatTile(title, accent)
            self._tiles[key] = tile
            hud.addWidget(tile)
        layout.addLayout(hud)

        self._phrase_card = PhraseCard()
        layout.addWidget(self._phrase_card)
        self._hint_widget = RomajiHintWidget()
        layout.addWidget(self._hint_widget)
        self._next_label = QLabel()
        self._next_label.setAlignment(Qt.AlignCenter)
        self._next_label.setStyleSheet(f"color: {Palette.TEXT_MUTED}; font-size: 14px;")
        layout.addWidget(self._next_label)
        self._status_label = QLabel()
        self._status_label.setAlignment(Qt.AlignCenter)
        self._status_label.setStyleSheet(f"color: {Palette.TEXT_SECONDARY}; font-size: 16px;")
        layout.addWidget(self._status_label)

        self._keyboard = VirtualKeyboard(self._layouts.default())
        layout.addWidget(self._keyboard, 1)
        return screen

    def _build_result_screen(self) -> QWidget:
        screen = QWidget()
        layout = QVBoxLayout(screen)
        layout.setContentsMargins(80, 60, 80, 60)
        self._result_title = QLabel()
        self._result_title.setStyleSheet(f"font-size: 32px; font-weight: 800; color: {Palette.PRIMARY_DARK};")
        layout.addWidget(self._result_title)
        self._result_body = QLabel()
        self._result_body.setTextFormat(Qt.RichText)
        self._result_body.setStyleSheet("font-size: 16px;")
        layout.addWidget(self._result_body, 1)
        buttons = QHBoxLayout()
        retry = QPushButton("Play again")
        retry.clicked.connect(self._retry)
        home = QPushButton("Home")
        home.clicked.connect(self._show_home_screen)
        buttons.addStretch(1)
        buttons.addWidget(retry)
        buttons.addWidget(home)
        layout.addLayout(buttons)
        return screen

    # ------------------------------------------------------------------
    # Home screen
    # ------------------------------------------------------------------

    def _refresh_home(self) -> None:
        settings = self._progress_store.settings
        for combo, name in ((self._source_combo, settings.source_layout), (self._target_combo, settings.target_layout)):
            combo.blockSignals(True)
            index = combo.findText(name)
            combo.setCurrentIndex(index if index >= 0 else 0)
            combo.blockSignals(False)
        self._speed_spin.blockSignals(True)
        self._speed_spin.setValue(settings.speed_window)
        self._speed_spin.blockSignals(False)
        self._single_n_check.blockSignals(True)
        self._single_n_check.setChecked(settings.allow_single_n)
        self._single_n_check.blockSignals(False)

        self._keystrokes_label.setText(f"Total keystrokes: {self._progress_store.total_keystrokes:,}")
        rows: List[str] = []
        for rank, entry in enumerate(self._progress_store.ranking()[:RANKING_ROWS], start=1):
            rows.append(
                f"<tr><td>{rank}.</td><td><b>{entry.score:,}</b></td>"
                f"<td>{entry.mode}</td><td>{entry.kpm:.0f} kpm</td><td>{entry.accuracy * 100:.1f}%</td></tr>"
            )
        if rows:
            self._ranking_label.setText(f"<table cellspacing='6'>{''.join(rows)}</table>")
        else:
            self._ranking_label.setText(f"<span style='color:{Palette.TEXT_MUTED}'>No runs yet.</span>")

    def _on_settings_changed(self, *_args) -> None:
        self._progress_store.update_settings(
            source_layout=self._source_combo.currentText(),
            target_layout=self._target_combo.currentText(),
            speed_window=self._speed_spin.value(),
            allow_single_n=self._single_n_check.isChecked(),
        )

    def _show_home_screen(self) -> None:
        self._refresh_home()
        self._stack.setCurrentWidget(self._home_screen)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _layout_or_default(self, name: str) -> LayoutTable:
        try:
            return self._layouts.get(name)
        except KeyError:
            logger.warning("Unknown layout %r, using %s", name, self._layouts.default().name)
            return self._layouts.default()

    def _start_mode(self, mode: GameMode) -> None:
        if self._bridge.running:
            self._bridge.stop()
        settings = self._progress_store.settings
        source = self._layout_or_default(settings.source_layout)
        target = self._layout_or_default(settings.target_layout)
        issues = self._phrases.draw(mode.phrase_set, mode.issue_count, self._rng)
        predictor = NextKeyPredictor(self._table, allow_single_n_at_end=settings.allow_single_n)
        resolver = SpellingResolver(self._table, allow_single_n_at_end=settings.allow_single_n)
        speed_window = settings.speed_window

        def factory(key_source: KeyEventSource, listener: Listener) -> TypingSession:
            return TypingSession(
                issues,
                mode,
                predictor,
                resolver,
                source,
                target,
                key_source=key_source,
                speed_window=speed_window,
                listener=listener,
            )

        self._current_mode = mode
        self._mode_label.setText(f"{mode.name} mode")
        self._keyboard.set_layout_table(target)
        self._keyboard.setVisible(mode.show_keyboard)
        self._status_label.setText("Press Space to start")
        first = issues[0] if issues else None
        self._phrase_card.set_phrase(first.text if first else "", first.reading if first else "")
        self._hint_widget.set_state("", "")
        self._next_label.setText("")
        for tile in self._tiles.values():
            tile.set_value("-")
        self._stack.setCurrentWidget(self._typing_screen)
        self._bridge.start(factory)

    def _retry(self) -> None:
        if self._current_mode is not None:
            self._start_mode(self._current_mode)

    def _leave_typing_screen(self) -> None:
        self._bridge.cancel()
        self._show_home_screen()

    def _on_session_event(self, event: SessionEvent) -> None:
        if event.kind == EventKind.ABORTED:
            return
        snapshot = event.snapshot
        if event.kind == EventKind.STARTED:
            self._status_label.setText("")
        self._render_snapshot(snapshot, missed=event.kind == EventKind.MISS)
        if event.kind == EventKind.MISS:
            self._keyboard.flash_miss(snapshot.last_key_index)

    def _render_snapshot(self, snapshot: SessionSnapshot, missed: bool = False) -> None:
        issue = snapshot.issue
        if issue is not None:
            self._phrase_card.set_phrase(issue.text, issue.reading)
        self._hint_widget.set_state(snapshot.hint, snapshot.typed, missed)
        upcoming = snapshot.next_issue
        self._next_label.setText(f"Next: {upcoming.text}" if upcoming else "")
        self._tiles["score"].set_value(f"{snapshot.score:,}")
        self._tiles["combo"].set_value(str(snapshot.combo))
        self._tiles["kpm"].set_value(f"{snapshot.kpm:.0f}")
        self._tiles["speed"].set_value("-" if snapshot.speed is None else f"{snapshot.speed:.1f}")
        self._tiles["accuracy"].set_value(f"{snapshot.accuracy * 100:.1f}%")
        shown = min(snapshot.issue_index + 1, snapshot.issue_count)
        self._tiles["progress"].set_value(f"{shown}/{snapshot.issue_count}")
        if snapshot.state == SessionState.ACTIVE:
            target = self._layout_or_default(self._progress_store.settings.target_layout)
            self._keyboard.highlight(locate_char(letter, target) for letter in snapshot.expected_letters)
        else:
            self._keyboard.highlight(())

    def _on_session_finished(self, summary: SessionSummary) -> None:
        rank = self._progress_store.record_session(summary)
        if summary.state == SessionState.COMPLETE or summary.reason == AbortReason.FINISHED_EARLY:
            self._show_result(summary, rank)
        elif summary.reason == AbortReason.ERROR:
            QMessageBox.warning(self, "Session stopped", summary.error or "The keyboard input failed.")
            self._show_home_screen()
        elif summary.reason == AbortReason.USER_EXIT:
            self._show_home_screen()

    def _on_session_failed(self, message: str) -> None:
        QMessageBox.critical(self, "Session error", message)
        self._show_home_screen()

    def _show_result(self, summary: SessionSummary, rank: Optional[int]) -> None:
        self._result_title.setText("Finished!" if summary.state == SessionState.COMPLETE else "Stopped early")
        missed = " ".join(summary.missed_keys) or "none"
        rank_text = f"#{rank}" if rank is not None else "not ranked"
        self._result_body.setText(
            "<table cellspacing='8'>"
            f"<tr><td>Score</td><td><b>{summary.score:,}</b> ({rank_text})</td></tr>"
            f"<tr><td>Accuracy</td><td>{summary.accuracy * 100:.1f}%</td></tr>"
            f"<tr><td>Average speed</td><td>{summary.kpm:.0f} keys/min</td></tr>"
            f"<tr><td>Peak speed</td><td>{summary.peak_kpm:.0f} keys/min</td></tr>"
            f"<tr><td>Max combo</td><td>{summary.max_combo}</td></tr>"
            f"<tr><td>Phrases</td><td>{summary.completed_issues}</td></tr>"
            f"<tr><td>Time</td><td>{summary.duration:.1f}s</td></tr>"
            f"<tr><td>Missed keys</td><td>{missed}</td></tr>"
            "</table>"
        )
        self._stack.setCurrentWidget(self._result_screen)

    # ------------------------------------------------------------------
    # Qt plumbing
    # ------------------------------------------------------------------

    def eventFilter(self, obj: QObject, event: QEvent) -> bool:
        if (
            event.type() == QEvent.KeyPress
            and self._stack is not None
            and self._stack.currentWidget() is self._typing_screen
            and self._bridge.running
        ):
            return self._on_key_press(event)
        return super().eventFilter(obj, event)

    def _on_key_press(self, event: QKeyEvent) -> bool:
        if event.isAutoRepeat():
            return True
        key_event = to_key_event(event)
        if key_event is None:
            return False
        self._bridge.push_key(key_event)
        return True

    def closeEvent(self, event: QCloseEvent) -> None:
        self._bridge.stop()
        self._progress_store.save()
        super().closeEvent(event)
