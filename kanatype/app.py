"""Application entry point and setup for the Kanatype typing trainer."""

import logging
import sys

from PySide6.QtGui import QFont, QGuiApplication
from PySide6.QtWidgets import QApplication

from kanatype.core.layouts import LayoutRepository
from kanatype.core.phrases import PhraseRepository
from kanatype.core.progress import ProgressStore
from kanatype.core.romanization import RomanizationTable
from kanatype.ui.main_window import MainWindow

# Tried in order; Qt falls back per glyph to the next family.
JAPANESE_FONT_FAMILIES = [
    "Noto Sans CJK JP",
    "Noto Sans JP",
    "Yu Gothic UI",
    "Hiragino Sans",
    "IPAexGothic",
]


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def configure_font(app: QApplication) -> None:
    app_font = QFont(JAPANESE_FONT_FAMILIES[0])
    app_font.setFamilies(JAPANESE_FONT_FAMILIES)
    app_font.setPointSize(11)
    app.setFont(app_font)
    logging.info("Application font families: %s", ", ".join(JAPANESE_FONT_FAMILIES))


def run() -> None:
    """Initialize the application, load resources, and start the main window."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Kanatype")
    app.setApplicationDisplayName("Kanatype")
    configure_font(app)

    table = RomanizationTable()
    layouts = LayoutRepository()
    phrases = PhraseRepository()
    progress_store = ProgressStore()

    window = MainWindow(table=table, layouts=layouts, phrases=phrases, progress_store=progress_store)
    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        geometry = screen.availableGeometry()
        window.setGeometry(geometry)
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    run()
