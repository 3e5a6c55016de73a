from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from kanatype.core.metrics import DEFAULT_SPEED_WINDOW
from kanatype.core.session import SessionSummary

logger = logging.getLogger(__name__)

RANKING_LIMIT = 100


@dataclass
class Settings:
    source_layout: str = "JIS"
    target_layout: str = "JIS"
    speed_window: int = DEFAULT_SPEED_WINDOW
    allow_single_n: bool = False


@dataclass
class ModeBest:
    played: int = 0
    best_score: int = 0
    best_kpm: float = 0.0
    best_accuracy: float = 0.0


@dataclass
class RankingEntry:
    mode: str
    score: int
    kpm: float
    accuracy: float
    max_combo: int
    duration: float
    finished_at: float
    missed_keys: List[str]


class ProgressStore:
    """Settings, per-mode bests and the local ranking.

    File: ~/.kanatype/progress.json unless another path is given. Only touched
    between sessions, never while one is running.
    """

    def __init__(self, file_path: Optional[Path] = None) -> None:
        self._file_path = file_path or Path.home() / ".kanatype" / "progress.json"
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = Settings()
        self._bests: Dict[str, ModeBest] = {}
        self._ranking: List[RankingEntry] = []
        self._total_keystrokes = 0
        self._load()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def total_keystrokes(self) -> int:
        return self._total_keystrokes

    def update_settings(self, **changes: Any) -> None:
        for key, value in changes.items():
            if not hasattr(self._settings, key):
                raise KeyError(f"Unknown setting: {key!r}")
            setattr(self._settings, key, value)
        self._save()

    def get_mode_best(self, mode: str) -> ModeBest:
        return self._bests.get(mode, ModeBest())

    def ranking(self, mode: Optional[str] = None) -> List[RankingEntry]:
        if mode is None:
            return list(self._ranking)
        return [entry for entry in self._ranking if entry.mode == mode]

    def record_session(self, summary: SessionSummary) -> Optional[int]:
        """Fold a finished run into the statistics.

        Returns the 1-based rank the run reached, or None when it did not
        qualify.
        """
        self._total_keystrokes += summary.hits + summary.misses
        rank: Optional[int] = None
        if summary.rankable:
            best = self._bests.get(summary.mode, ModeBest())
            best.played += 1
            best.best_score = max(best.best_score, summary.score)
            best.best_kpm = max(best.best_kpm, summary.kpm)
            best.best_accuracy = max(best.best_accuracy, summary.accuracy)
            self._bests[summary.mode] = best
            rank = self._insert_ranking(
                RankingEntry(
                    mode=summary.mode,
                    score=summary.score,
                    kpm=summary.kpm,
                    accuracy=summary.accuracy,
                    max_combo=summary.max_combo,
                    duration=summary.duration,
                    finished_at=summary.finished_at,
                    missed_keys=list(summary.missed_keys),
                )
            )
        self._save()
        return rank

    def reset(self) -> None:
        """Clear statistics and ranking; settings are kept."""
        self._bests = {}
        self._ranking = []
        self._total_keystrokes = 0
        self._save()

    def save(self) -> None:
        self._save()

    def _insert_ranking(self, entry: RankingEntry) -> Optional[int]:
        position = len(self._ranking)
        for i, existing in enumerate(self._ranking):
            if entry.score > existing.score:
                position = i
                break
        if position >= RANKING_LIMIT:
            return None
        self._ranking.insert(position, entry)
        del self._ranking[RANKING_LIMIT:]
        return position + 1

    def _load(self) -> None:
        if not self._file_path.exists():
            return
        try:
            payload = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load progress from %s: %s", self._file_path, e)
            return
        if not isinstance(payload, dict):
            logger.warning("Ignoring malformed progress file %s", self._file_path)
            return

        try:
            settings = payload.get("settings", {})
            if isinstance(settings, dict):
                known = {f.name for f in fields(Settings)}
                self._settings = Settings(**{k: v for k, v in settings.items() if k in known})
            for key, value in payload.get("modes", {}).items():
                self._bests[key] = ModeBest(
                    played=int(value.get("played", 0)),
                    best_score=int(value.get("best_score", 0)),
                    best_kpm=float(value.get("best_kpm", 0.0)),
                    best_accuracy=float(value.get("best_accuracy", 0.0)),
                )
            self._ranking = [RankingEntry(**item) for item in payload.get("ranking", [])][:RANKING_LIMIT]
            self._total_keystrokes = int(payload.get("total_keystrokes", 0))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed progress file %s: %s", self._file_path, e)
            self._settings = Settings()
            self._bests = {}
            self._ranking = []
            self._total_keystrokes = 0

    def _save(self) -> None:
        payload = {
            "settings": asdict(self._settings),
            "total_keystrokes": self._total_keystrokes,
            "modes": {key: asdict(value) for key, value in self._bests.items()},
            "ranking": [asdict(entry) for entry in self._ranking],
        }
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not save progress to %s: %s", self._file_path, e)
