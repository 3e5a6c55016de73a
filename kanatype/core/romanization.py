from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

SOKUON = "っ"
NASAL = "ん"

# Phrases may arrive pre-segmented (["と", "う", "きょ", "う"]) or as one string.
Phrase = Union[str, Sequence[str]]

_DEFAULT_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "romanization.yaml"


def phrase_text(phrase: Phrase) -> str:
    """Join a segmented phrase back into a plain string."""
    if isinstance(phrase, str):
        return phrase
    return "".join(phrase)


def is_hiragana(char: str) -> bool:
    return "ぁ" <= char <= "ゖ"


@dataclass(frozen=True)
class RomanizationEntry:
    kana: str
    spellings: Tuple[str, ...]

    @property
    def canonical(self) -> str:
        return self.spellings[0]


class RomanizationTable:
    """Kana unit -> ordered romanized spellings.

    Lookups never fail: an unknown unit simply has no spellings and callers
    treat it as a literal character.
    """

    def __init__(self, entries: Optional[Dict[str, Sequence[str]]] = None, source: str = "<memory>") -> None:
        if entries is None:
            entries = self._load_entries(_DEFAULT_TABLE_PATH)
            source = _DEFAULT_TABLE_PATH.name
        self._entries: Dict[str, RomanizationEntry] = {}
        for kana, spellings in entries.items():
            self._entries[kana] = self._validate(kana, spellings, source)
        # Longest keys first so multi-character units shadow their prefixes.
        self._by_length: List[RomanizationEntry] = sorted(
            self._entries.values(), key=lambda e: len(e.kana), reverse=True
        )
        self._max_key = max((len(k) for k in self._entries), default=1)

    @classmethod
    def from_yaml(cls, path: Path) -> "RomanizationTable":
        return cls(cls._load_entries(path), source=path.name)

    def __contains__(self, kana: str) -> bool:
        return kana in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[RomanizationEntry]:
        return list(self._entries.values())

    def spellings_for(self, kana: str) -> Tuple[str, ...]:
        entry = self._entries.get(kana)
        return entry.spellings if entry else ()

    def matches_at(self, text: str, index: int) -> Iterator[RomanizationEntry]:
        """Yield every entry whose kana starts at ``index``, longest first."""
        for length in range(min(self._max_key, len(text) - index), 0, -1):
            entry = self._entries.get(text[index:index + length])
            if entry is not None:
                yield entry

    def segment(self, phrase: Phrase) -> List[str]:
        """Split a phrase into units by greedy longest match."""
        text = phrase_text(phrase)
        units: List[str] = []
        i = 0
        while i < len(text):
            entry = next(self.matches_at(text, i), None)
            unit = entry.kana if entry else text[i]
            units.append(unit)
            i += len(unit)
        return units

    def canonical(self, phrase: Phrase) -> str:
        """First-listed spelling of every unit, concatenated."""
        return "".join(
            self.spellings_for(unit)[0] if unit in self._entries else unit
            for unit in self.segment(phrase)
        )

    @staticmethod
    def _load_entries(path: Path) -> Dict[str, Sequence[str]]:
        if not path.exists():
            raise FileNotFoundError(f"Romanization table not found: {path}")
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not raw or not isinstance(raw, dict) or not isinstance(raw.get("entries"), dict):
            raise ValueError(f"{path.name}: expected YAML with an 'entries' mapping")
        logger.info("Loaded %d romanization entries from %s", len(raw["entries"]), path.name)
        return raw["entries"]

    @staticmethod
    def _validate(kana: object, spellings: object, source: str) -> RomanizationEntry:
        if not isinstance(kana, str) or not kana:
            raise ValueError(f"{source}: invalid kana key {kana!r}")
        if not isinstance(spellings, (list, tuple)) or not spellings:
            raise ValueError(f"{source}: '{kana}' has no spellings")
        for spelling in spellings:
            if not isinstance(spelling, str) or not spelling:
                raise ValueError(f"{source}: '{kana}' has an invalid spelling {spelling!r}")
        return RomanizationEntry(kana=kana, spellings=tuple(spellings))
