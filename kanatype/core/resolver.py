"""Best-guess romanization used as the on-screen typing hint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from kanatype.core.predictor import (
    NASAL_BLOCKERS,
    NASAL_SPELLINGS,
    SOKUON_ALTERNATIVES,
    doubling_letters,
    is_doubling_consonant,
)
from kanatype.core.romanization import NASAL, SOKUON, Phrase, RomanizationTable, phrase_text

PENALTY_WEIGHT = 10000


class SpellingPreference:
    """The player's last successfully used spelling per kana unit.

    Entries are only ever overwritten; ``reset`` starts a new session.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._preferred: Dict[str, str] = dict(initial or {})

    def get(self, kana: str) -> Optional[str]:
        return self._preferred.get(kana)

    def record(self, kana: str, spelling: str) -> None:
        self._preferred[kana] = spelling

    def reset(self) -> None:
        self._preferred.clear()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._preferred)

    def __contains__(self, kana: str) -> bool:
        return kana in self._preferred

    def __len__(self) -> int:
        return len(self._preferred)


@dataclass(frozen=True)
class _Option:
    text: str
    next_index: int
    penalty: int = 0
    double_next: bool = False
    after_nasal: bool = False


@dataclass(frozen=True)
class _Completion:
    penalty: int
    text: str

    @property
    def score(self) -> int:
        return self.penalty * PENALTY_WEIGHT + len(self.text)


class _Enumerator:
    def __init__(
        self,
        table: RomanizationTable,
        preference: SpellingPreference,
        text: str,
        typed: str,
        single_n_at_end: bool = False,
    ) -> None:
        self.table = table
        self.single_n_at_end = single_n_at_end
        self.preference = preference
        self.text = text
        self.typed = typed
        self._best_suffix: Dict[Tuple[int, bool, bool], Optional[_Completion]] = {}
        self.best: Optional[Tuple[int, str]] = None

    def options(self, index: int, double: bool, after_nasal: bool) -> Iterator[_Option]:
        char = self.text[index]

        if char == SOKUON:
            if not double and doubling_letters(self.table, self.text, index + 1):
                yield _Option("", index + 1, double_next=True)
            preferred = self.preference.get(SOKUON)
            alternatives = self.table.spellings_for(SOKUON) or SOKUON_ALTERNATIVES
            for alt in self._ordered(alternatives, preferred):
                if self._allowed(alt, double, after_nasal):
                    penalty = 0 if preferred is None or alt == preferred else 1
                    yield _Option(self._doubled(alt, double), index + 1, penalty)
            return

        if char == NASAL:
            # Nasal spellings carry no penalty until the player has shown a preference.
            preferred = self.preference.get(NASAL)
            is_last = index == len(self.text) - 1
            if (not is_last or self.single_n_at_end) and self._allowed("n", double, after_nasal):
                penalty = 0 if preferred is None or preferred == "n" else 1
                yield _Option(self._doubled("n", double), index + 1, penalty, after_nasal=not is_last)
            for spelling in self._ordered(self.table.spellings_for(NASAL) or NASAL_SPELLINGS, preferred):
                if self._allowed(spelling, double, after_nasal):
                    penalty = 0 if preferred is None or spelling == preferred else 1
                    yield _Option(self._doubled(spelling, double), index + 1, penalty)
            return

        entries = list(self.table.matches_at(self.text, index))
        if not entries:
            if self._allowed(char, double, after_nasal):
                yield _Option(self._doubled(char, double), index + 1)
            return

        for entry in entries:
            preferred = self.preference.get(entry.kana)
            if preferred not in entry.spellings:
                preferred = entry.canonical
            for spelling in self._ordered(entry.spellings, preferred):
                if self._allowed(spelling, double, after_nasal):
                    penalty = 0 if spelling == preferred else 1
                    yield _Option(self._doubled(spelling, double), index + len(entry.kana), penalty)

    @staticmethod
    def _ordered(spellings, preferred: Optional[str]) -> List[str]:
        if preferred is None or preferred not in spellings:
            return list(spellings)
        return [preferred] + [s for s in spellings if s != preferred]

    @staticmethod
    def _allowed(spelling: str, double: bool, after_nasal: bool) -> bool:
        if double and not is_doubling_consonant(spelling[0]):
            return False
        if after_nasal and spelling[:1] in NASAL_BLOCKERS:
            return False
        return True

    @staticmethod
    def _doubled(spelling: str, double: bool) -> str:
        return spelling[0] + spelling if double else spelling

    def consistent(self, out: str) -> bool:
        if len(out) <= len(self.typed):
            return self.typed.startswith(out)
        return out.startswith(self.typed)

    def completion(self, index: int, double: bool, after_nasal: bool) -> Optional[_Completion]:
        """Cheapest spelling of ``text[index:]``; first found wins ties."""
        key = (index, double, after_nasal)
        if key in self._best_suffix:
            return self._best_suffix[key]
        if index >= len(self.text):
            best: Optional[_Completion] = None if double else _Completion(0, "")
        else:
            best = None
            for option in self.options(index, double, after_nasal):
                rest = self.completion(option.next_index, option.double_next, option.after_nasal)
                if rest is None:
                    continue
                candidate = _Completion(option.penalty + rest.penalty, option.text + rest.text)
                if best is None or candidate.score < best.score:
                    best = candidate
        self._best_suffix[key] = best
        return best

    def walk(self, index: int, double: bool, after_nasal: bool, out: str, penalty: int) -> None:
        if not self.consistent(out):
            return
        if len(out) >= len(self.typed):
            rest = self.completion(index, double, after_nasal)
            if rest is not None:
                self._offer(out + rest.text, penalty + rest.penalty)
            return
        if index >= len(self.text):
            return
        for option in self.options(index, double, after_nasal):
            self.walk(
                option.next_index,
                option.double_next,
                option.after_nasal,
                out + option.text,
                penalty + option.penalty,
            )

    def _offer(self, out: str, penalty: int) -> None:
        score = penalty * PENALTY_WEIGHT + (len(out) - len(self.typed))
        if self.best is None or score < self.best[0]:
            self.best = (score, out)


class SpellingResolver:
    def __init__(self, table: RomanizationTable, allow_single_n_at_end: bool = False) -> None:
        self._table = table
        self.allow_single_n_at_end = allow_single_n_at_end

    def best_guess(self, phrase: Phrase, preference: SpellingPreference, typed: str) -> str:
        """Most likely full romanization of ``phrase`` consistent with ``typed``.

        Falls back to the canonical spelling when nothing is consistent; the
        fallback is for display only.
        """
        text = phrase_text(phrase)
        enumerator = _Enumerator(self._table, preference, text, typed, self.allow_single_n_at_end)
        enumerator.walk(0, False, False, "", 0)
        if enumerator.best is None:
            return self._table.canonical(text)
        return enumerator.best[1]
