from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class GameMode:
    """Policy flags of one difficulty mode."""

    key: str
    name: str
    issue_count: int
    reset_on_miss: bool = False
    show_keyboard: bool = True
    phrase_set: str = "standard"


MODES: Dict[str, GameMode] = {
    mode.key: mode
    for mode in (
        GameMode("normal", "Normal", 15),
        GameMode("focus", "Focus", 15, show_keyboard=False),
        GameMode("exact", "Exact", 15, reset_on_miss=True),
        GameMode("long", "Long", 30),
        GameMode("number", "Number", 15, phrase_set="numbers"),
        GameMode("speed", "Speed", 20),
        GameMode("endless", "Endless", 999),
    )
}

DEFAULT_MODE = "normal"


def all_modes() -> List[GameMode]:
    return list(MODES.values())


def get_mode(key: str) -> GameMode:
    try:
        return MODES[key]
    except KeyError:
        raise KeyError(f"Unknown game mode: {key!r}") from None
