"""Tests for kanatype.core.modes – game mode policies."""

from __future__ import annotations

import pytest

from kanatype.core.modes import DEFAULT_MODE, MODES, all_modes, get_mode
from kanatype.core.phrases import PhraseRepository


class TestModes:
    def test_default_exists(self):
        assert get_mode(DEFAULT_MODE).key == DEFAULT_MODE

    def test_keys_match(self):
        for key, mode in MODES.items():
            assert mode.key == key

    def test_order(self):
        assert [m.key for m in all_modes()] == [
            "normal",
            "focus",
            "exact",
            "long",
            "number",
            "speed",
            "endless",
        ]

    def test_only_exact_resets_on_miss(self):
        assert [m.key for m in all_modes() if m.reset_on_miss] == ["exact"]

    def test_focus_hides_keyboard(self):
        assert not get_mode("focus").show_keyboard
        assert get_mode("normal").show_keyboard

    def test_issue_counts_are_positive(self):
        assert all(m.issue_count > 0 for m in all_modes())

    def test_every_phrase_set_exists(self):
        repo = PhraseRepository()
        for mode in all_modes():
            assert repo.get(mode.phrase_set).issues

    def test_unknown(self):
        with pytest.raises(KeyError, match="Unknown game mode"):
            get_mode("hard")
