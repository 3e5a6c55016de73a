from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Issue:
    """One phrase to type: display text plus its kana reading."""

    text: str
    reading: str


@dataclass(frozen=True)
class PhraseSet:
    key: str
    name: str
    issues: List[Issue]


class PhraseRepository:
    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path(__file__).resolve().parent.parent / "data" / "phrases"
        self._sets = self._load_sets()

    def all(self) -> List[PhraseSet]:
        return list(self._sets.values())

    def get(self, key: str) -> PhraseSet:
        try:
            return self._sets[key]
        except KeyError:
            raise KeyError(f"Unknown phrase set: {key!r}") from None

    def draw(self, key: str, count: int, rng: Optional[random.Random] = None) -> List[Issue]:
        """Pick ``count`` issues from a set, uniformly and with replacement."""
        issues = self.get(key).issues
        rng = rng or random.Random()
        return [rng.choice(issues) for _ in range(count)]

    def _load_sets(self) -> Dict[str, PhraseSet]:
        if not self._base_dir.exists():
            raise FileNotFoundError(f"Phrases directory not found: {self._base_dir}")

        sets: Dict[str, PhraseSet] = {}
        for path in sorted(self._base_dir.glob("*.yaml")):
            key = path.stem
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
            if not raw or not isinstance(raw, dict):
                raise ValueError(f"{path.name}: expected YAML with 'title' and 'content'")
            title = raw.get("title")
            content = raw.get("content")
            if not title or not isinstance(title, str):
                raise ValueError(f"{path.name}: missing or invalid 'title'")
            if content is None:
                raise ValueError(f"{path.name}: missing 'content'")
            if not isinstance(content, list):
                raise ValueError(f"{path.name}: 'content' must be a list")
            issues: List[Issue] = []
            for item in content:
                if isinstance(item, dict):
                    reading = str(item.get("reading") or "").strip()
                    text = str(item.get("text") or reading).strip()
                else:
                    # bare strings are their own reading
                    reading = text = str(item).strip()
                if not reading:
                    raise ValueError(f"{path.name}: entry {item!r} has no reading")
                issues.append(Issue(text=text, reading=reading))
            if not issues:
                raise ValueError(f"{path.name}: 'content' has no phrases")
            sets[key] = PhraseSet(key=key, name=title.strip(), issues=issues)

        if not sets:
            raise ValueError(f"No phrase files (*.yaml) found in {self._base_dir}")
        logger.info("Loaded %d phrase sets: %s", len(sets), ", ".join(sets))
        return sets
