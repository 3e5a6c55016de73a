"""Next-key prediction for romanized kana input.

Given a target phrase and the characters typed so far, enumerate every
character that keeps the input on a path to a complete, valid romanization.
An empty result means the phrase has been typed completely.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from kanatype.core.romanization import NASAL, SOKUON, Phrase, RomanizationTable, phrase_text

SOKUON_ALTERNATIVES: Tuple[str, ...] = ("ltu", "xtu", "ltsu", "xtsu")
NASAL_SPELLINGS: Tuple[str, ...] = ("nn", "xn")

VOWELS = "aiueo"
# A lone "n" would merge with a following spelling starting with one of these.
NASAL_BLOCKERS = VOWELS + "yn"


class Provenance(str, Enum):
    DIRECT = "direct"
    TABLE_MATCH = "tableMatch"


@dataclass(frozen=True)
class NextKeyCandidate:
    """One legal next character.

    ``unit_index`` is the position in the phrase text of the unit the letter
    belongs to.
    """

    letter: str
    provenance: Provenance = Provenance.DIRECT
    source_kana: Optional[str] = None
    source_spelling: Optional[str] = None
    unit_index: int = 0

    def completes_unit(self, typed: str) -> bool:
        """Whether appending this letter to ``typed`` finishes ``source_spelling``."""
        if self.provenance != Provenance.TABLE_MATCH or not self.source_spelling:
            return False
        return (typed + self.letter).endswith(self.source_spelling)


def is_doubling_consonant(char: str) -> bool:
    return char.isascii() and char.isalpha() and char.lower() not in VOWELS + "n"


def spelling_allowed(spelling: str, lead: Optional[str], after_nasal: bool) -> bool:
    """Whether a unit may be spelled ``spelling`` in the current context.

    ``lead`` is the consonant a preceding sokuon doubled; ``after_nasal`` means
    the preceding ん was typed as a single ``n``.
    """
    if lead is not None and not spelling.startswith(lead):
        return False
    if after_nasal and spelling[:1] in NASAL_BLOCKERS:
        return False
    return True


def doubling_letters(table: RomanizationTable, text: str, index: int) -> List[str]:
    """Consonants a sokuon before ``text[index]`` may be typed as."""
    letters: List[str] = []
    if index >= len(text):
        return letters
    for entry in table.matches_at(text, index):
        for spelling in entry.spellings:
            head = spelling[0]
            if is_doubling_consonant(head) and head not in letters:
                letters.append(head)
    return letters


_CacheKey = Tuple[int, int, Optional[str], bool, str]


class _Search:
    """One recursive pass over a phrase for a fixed typed prefix."""

    def __init__(self, table: RomanizationTable, text: str, typed: str, single_n_at_end: bool) -> None:
        self.table = table
        self.text = text
        self.typed = typed
        self.single_n_at_end = single_n_at_end
        self.cache: Dict[_CacheKey, List[NextKeyCandidate]] = {}

    def visit(self, index: int, matched: int, lead: Optional[str] = None, after_nasal: bool = False) -> List[NextKeyCandidate]:
        key = (index, matched, lead, after_nasal, self.typed)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if index >= len(self.text):
            results: List[NextKeyCandidate] = []
        else:
            char = self.text[index]
            if char == SOKUON:
                results = self._sokuon(index, matched, lead, after_nasal)
            elif char == NASAL:
                results = self._nasal(index, matched, lead, after_nasal)
            else:
                results = self._unit(index, matched, lead, after_nasal)

        self.cache[key] = results
        return results

    def _spell(
        self,
        spelling: str,
        index: int,
        next_index: int,
        matched: int,
        kana: Optional[str],
        results: List[NextKeyCandidate],
    ) -> None:
        remaining = self.typed[matched:]
        if remaining.startswith(spelling):
            results.extend(self.visit(next_index, matched + len(spelling)))
        elif spelling.startswith(remaining):
            letter = spelling[len(remaining)]
            if kana is None:
                results.append(NextKeyCandidate(letter, unit_index=index))
            else:
                results.append(NextKeyCandidate(letter, Provenance.TABLE_MATCH, kana, spelling, index))

    def _unit(self, index: int, matched: int, lead: Optional[str], after_nasal: bool) -> List[NextKeyCandidate]:
        results: List[NextKeyCandidate] = []
        entries = list(self.table.matches_at(self.text, index))
        if not entries:
            char = self.text[index]
            if spelling_allowed(char, lead, after_nasal):
                self._spell(char, index, index + 1, matched, None, results)
            return results
        for entry in entries:
            for spelling in entry.spellings:
                if spelling_allowed(spelling, lead, after_nasal):
                    self._spell(spelling, index, index + len(entry.kana), matched, entry.kana, results)
        return results

    def _sokuon(self, index: int, matched: int, lead: Optional[str], after_nasal: bool) -> List[NextKeyCandidate]:
        results: List[NextKeyCandidate] = []
        remaining = self.typed[matched:]
        alternatives = self.table.spellings_for(SOKUON) or SOKUON_ALTERNATIVES
        for alt in alternatives:
            if spelling_allowed(alt, lead, after_nasal):
                self._spell(alt, index, index + 1, matched, SOKUON, results)
        if lead is None:
            for consonant in doubling_letters(self.table, self.text, index + 1):
                if not spelling_allowed(consonant, None, after_nasal):
                    continue
                if remaining.startswith(consonant):
                    results.extend(self.visit(index + 1, matched + 1, lead=consonant))
                elif not remaining:
                    results.append(NextKeyCandidate(consonant, unit_index=index))
        # Neither branch viable: report nothing rather than a fallback key.
        return results

    def _nasal(self, index: int, matched: int, lead: Optional[str], after_nasal: bool) -> List[NextKeyCandidate]:
        results: List[NextKeyCandidate] = []
        remaining = self.typed[matched:]
        is_last = index == len(self.text) - 1
        single_ok = spelling_allowed("n", lead, after_nasal)
        lone_n = NextKeyCandidate("n", Provenance.TABLE_MATCH, NASAL, "n", index)

        if is_last and self.single_n_at_end and single_ok and remaining.startswith("n"):
            return self.visit(index + 1, matched + 1)

        for spelling in self.table.spellings_for(NASAL) or NASAL_SPELLINGS:
            if spelling_allowed(spelling, lead, after_nasal):
                self._spell(spelling, index, index + 1, matched, NASAL, results)

        if is_last and self.single_n_at_end and single_ok and not remaining:
            results.append(lone_n)
        elif not is_last and single_ok:
            if remaining.startswith("n"):
                results.extend(self.visit(index + 1, matched + 1, after_nasal=True))
            elif not remaining:
                # Only offer the lone "n" if the next unit can follow it.
                if self.visit(index + 1, matched + 1, after_nasal=True):
                    results.append(lone_n)
        return results


def open_unit(candidates: List[NextKeyCandidate], text_length: int) -> int:
    """Text index of the earliest unit still being typed; ``text_length`` once complete."""
    return min((c.unit_index for c in candidates), default=text_length)


def _unique(candidates: List[NextKeyCandidate]) -> List[NextKeyCandidate]:
    seen = set()
    unique: List[NextKeyCandidate] = []
    for candidate in candidates:
        if candidate not in seen:
            seen.add(candidate)
            unique.append(candidate)
    return unique


class NextKeyPredictor:
    def __init__(self, table: RomanizationTable, allow_single_n_at_end: bool = False) -> None:
        self._table = table
        self.allow_single_n_at_end = allow_single_n_at_end

    @property
    def table(self) -> RomanizationTable:
        return self._table

    def next_keys(self, phrase: Phrase, typed: str) -> List[NextKeyCandidate]:
        """Every legal next character; empty once ``phrase`` is fully typed."""
        search = _Search(self._table, phrase_text(phrase), typed, self.allow_single_n_at_end)
        return _unique(search.visit(0, 0))

    def next_letters(self, phrase: Phrase, typed: str) -> List[str]:
        letters: List[str] = []
        for candidate in self.next_keys(phrase, typed):
            if candidate.letter not in letters:
                letters.append(candidate.letter)
        return letters

    def is_complete(self, phrase: Phrase, typed: str) -> bool:
        return not self.next_keys(phrase, typed)

    def open_unit(self, phrase: Phrase, typed: str) -> int:
        return open_unit(self.next_keys(phrase, typed), len(phrase_text(phrase)))
