"""Tests for kanatype.core.resolver – best-guess hint romanization."""

from __future__ import annotations

import pytest

from kanatype.core.resolver import SpellingPreference, SpellingResolver
from kanatype.core.romanization import RomanizationTable

TABLE = RomanizationTable()


@pytest.fixture()
def resolver() -> SpellingResolver:
    return SpellingResolver(TABLE)


@pytest.fixture()
def prefs() -> SpellingPreference:
    return SpellingPreference()


# ---------------------------------------------------------------------------
# SpellingPreference
# ---------------------------------------------------------------------------

class TestSpellingPreference:
    def test_empty(self, prefs: SpellingPreference):
        assert prefs.get("し") is None
        assert "し" not in prefs
        assert len(prefs) == 0

    def test_record_overwrites(self, prefs: SpellingPreference):
        prefs.record("し", "shi")
        prefs.record("し", "ci")
        assert prefs.get("し") == "ci"
        assert len(prefs) == 1

    def test_reset(self, prefs: SpellingPreference):
        prefs.record("し", "shi")
        prefs.reset()
        assert prefs.as_dict() == {}

    def test_initial_values_are_copied(self):
        initial = {"ち": "chi"}
        prefs = SpellingPreference(initial)
        prefs.record("ち", "ti")
        assert initial == {"ち": "chi"}


# ---------------------------------------------------------------------------
# best_guess
# ---------------------------------------------------------------------------

class TestBestGuess:
    def test_canonical_without_preferences(self, resolver, prefs):
        assert resolver.best_guess("とうきょう", prefs, "") == "toukyou"

    def test_toukyou_after_to(self, resolver, prefs):
        assert resolver.best_guess(["と", "う", "きょ", "う"], prefs, "to") == "toukyou"

    def test_follows_typed_alternative(self, resolver, prefs):
        assert resolver.best_guess("しかく", prefs, "sh") == "shikaku"

    def test_preference_bias(self, resolver, prefs):
        prefs.record("し", "shi")
        assert resolver.best_guess("しかく", prefs, "") == "shikaku"

    def test_typed_overrides_preference(self, resolver, prefs):
        prefs.record("し", "shi")
        assert resolver.best_guess("しかく", prefs, "si") == "sikaku"

    def test_preference_applies_to_every_occurrence(self, resolver, prefs):
        prefs.record("ち", "chi")
        assert resolver.best_guess("ちち", prefs, "") == "chichi"

    def test_unknown_preference_falls_back_to_canonical(self, resolver, prefs):
        prefs.record("か", "qa")
        assert resolver.best_guess("か", prefs, "") == "ka"

    def test_digraph_preferred_over_split(self, resolver, prefs):
        assert resolver.best_guess("きょう", prefs, "") == "kyou"

    def test_split_when_typed(self, resolver, prefs):
        assert resolver.best_guess("きょう", prefs, "kix") == "kixyou"

    def test_literal_characters(self, resolver, prefs):
        assert resolver.best_guess("3じ", prefs, "") == "3zi"

    def test_inconsistent_typed_falls_back_to_canonical(self, resolver, prefs):
        assert resolver.best_guess("とうきょう", prefs, "zzz") == "toukyou"

    def test_empty_phrase(self, resolver, prefs):
        assert resolver.best_guess("", prefs, "") == ""


# ---------------------------------------------------------------------------
# Sokuon and nasal
# ---------------------------------------------------------------------------

class TestSpecialUnits:
    def test_sokuon_doubles_by_default(self, resolver, prefs):
        assert resolver.best_guess("きって", prefs, "") == "kitte"

    def test_sokuon_alternative_when_typed(self, resolver, prefs):
        assert resolver.best_guess("きって", prefs, "kix") == "kixtute"

    def test_sokuon_preference(self, resolver, prefs):
        prefs.record("っ", "xtu")
        assert resolver.best_guess("きって", prefs, "") == "kitte"
        assert resolver.best_guess("っ", prefs, "") == "xtu"

    def test_sokuon_with_alternate_next_spelling(self, resolver, prefs):
        prefs.record("ち", "chi")
        assert resolver.best_guess("まっち", prefs, "") == "macchi"

    def test_final_sokuon(self, resolver, prefs):
        assert resolver.best_guess("あっ", prefs, "") == "altu"

    def test_single_n_before_consonant(self, resolver, prefs):
        assert resolver.best_guess("ほんき", prefs, "") == "honki"

    def test_double_n_before_vowel(self, resolver, prefs):
        assert resolver.best_guess("かんい", prefs, "") == "kanni"

    def test_double_n_before_y(self, resolver, prefs):
        assert resolver.best_guess("ほんや", prefs, "") == "honnya"

    def test_final_nasal(self, resolver, prefs):
        assert resolver.best_guess("ほん", prefs, "") == "honn"

    def test_final_single_n_when_allowed(self, prefs):
        lenient = SpellingResolver(TABLE, allow_single_n_at_end=True)
        assert lenient.best_guess("ほん", prefs, "") == "hon"

    def test_nasal_preference(self, resolver, prefs):
        prefs.record("ん", "nn")
        assert resolver.best_guess("ほんき", prefs, "") == "honnki"

    def test_single_n_once_typed_into_next_unit(self, resolver, prefs):
        prefs.record("ん", "nn")
        assert resolver.best_guess("ほんき", prefs, "honk") == "honki"
