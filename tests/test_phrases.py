"""Tests for kanatype.core.phrases – phrase sets loaded from YAML."""

from __future__ import annotations

import random
from pathlib import Path

import pytest
import yaml

from kanatype.core.phrases import Issue, PhraseRepository
from kanatype.core.predictor import NextKeyPredictor
from kanatype.core.resolver import SpellingPreference, SpellingResolver
from kanatype.core.romanization import RomanizationTable


@pytest.fixture(scope="module")
def repo() -> PhraseRepository:
    return PhraseRepository()


def _write(directory: Path, stem: str, data) -> None:
    (directory / f"{stem}.yaml").write_text(yaml.dump(data, allow_unicode=True), encoding="utf-8")


# ---------------------------------------------------------------------------
# Bundled phrase sets
# ---------------------------------------------------------------------------

class TestBundledSets:
    def test_keys(self, repo: PhraseRepository):
        assert {s.key for s in repo.all()} == {"standard", "numbers"}

    def test_issue_fields(self, repo: PhraseRepository):
        first = repo.get("standard").issues[0]
        assert first == Issue(text="東京へ行く", reading="とうきょうへいく")

    def test_every_reading_is_typeable(self, repo: PhraseRepository):
        table = RomanizationTable()
        predictor = NextKeyPredictor(table)
        resolver = SpellingResolver(table)
        for phrase_set in repo.all():
            for issue in phrase_set.issues:
                hint = resolver.best_guess(issue.reading, SpellingPreference(), "")
                typed = ""
                for char in hint:
                    assert char in predictor.next_letters(issue.reading, typed), (issue.reading, typed)
                    typed += char
                assert predictor.is_complete(issue.reading, typed)

    def test_unknown_set(self, repo: PhraseRepository):
        with pytest.raises(KeyError, match="Unknown phrase set"):
            repo.get("poetry")


# ---------------------------------------------------------------------------
# draw
# ---------------------------------------------------------------------------

class TestDraw:
    def test_count(self, repo: PhraseRepository):
        assert len(repo.draw("standard", 30, random.Random(1))) == 30

    def test_seeded_draw_is_repeatable(self, repo: PhraseRepository):
        a = repo.draw("numbers", 5, random.Random(7))
        b = repo.draw("numbers", 5, random.Random(7))
        assert a == b

    def test_draws_from_set(self, repo: PhraseRepository):
        issues = set(repo.get("numbers").issues)
        assert set(repo.draw("numbers", 20)) <= issues


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoading:
    def test_bare_strings(self, tmp_path: Path):
        _write(tmp_path, "kana", {"title": "Kana", "content": ["あいう"]})
        issue = PhraseRepository(tmp_path).get("kana").issues[0]
        assert issue == Issue(text="あいう", reading="あいう")

    def test_text_defaults_to_reading(self, tmp_path: Path):
        _write(tmp_path, "kana", {"title": "Kana", "content": [{"reading": "ねこ"}]})
        assert PhraseRepository(tmp_path).get("kana").issues[0].text == "ねこ"

    def test_name_from_title(self, tmp_path: Path):
        _write(tmp_path, "kana", {"title": " Kana ", "content": ["あ"]})
        assert PhraseRepository(tmp_path).get("kana").name == "Kana"

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            PhraseRepository(tmp_path / "nope")

    def test_empty_directory(self, tmp_path: Path):
        with pytest.raises(ValueError, match="No phrase files"):
            PhraseRepository(tmp_path)

    def test_missing_title(self, tmp_path: Path):
        _write(tmp_path, "bad", {"content": ["あ"]})
        with pytest.raises(ValueError, match="bad.yaml"):
            PhraseRepository(tmp_path)

    def test_content_not_a_list(self, tmp_path: Path):
        _write(tmp_path, "bad", {"title": "Bad", "content": "あ"})
        with pytest.raises(ValueError, match="must be a list"):
            PhraseRepository(tmp_path)

    def test_entry_without_reading(self, tmp_path: Path):
        _write(tmp_path, "bad", {"title": "Bad", "content": [{"text": "猫"}]})
        with pytest.raises(ValueError, match="no reading"):
            PhraseRepository(tmp_path)

    def test_empty_content(self, tmp_path: Path):
        _write(tmp_path, "bad", {"title": "Bad", "content": []})
        with pytest.raises(ValueError, match="no phrases"):
            PhraseRepository(tmp_path)
