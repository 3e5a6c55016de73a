"""Tests for kanatype.core.progress – settings, bests and ranking persistence."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import pytest

from kanatype.core import progress as progress_module
from kanatype.core.progress import RANKING_LIMIT, ModeBest, ProgressStore, Settings
from kanatype.core.session import AbortReason, SessionState, SessionSummary


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def progress_file(tmp_path: Path) -> Path:
    return tmp_path / "kanatype" / "progress.json"


@pytest.fixture()
def store(progress_file: Path) -> ProgressStore:
    """ProgressStore backed by a temp file so tests don't touch ~/.kanatype."""
    return ProgressStore(progress_file)


def make_summary(
    score: int = 1000,
    mode: str = "normal",
    hits: int = 20,
    misses: int = 2,
    state: SessionState = SessionState.COMPLETE,
    reason: Optional[AbortReason] = None,
) -> SessionSummary:
    return SessionSummary(
        mode=mode,
        state=state,
        reason=reason,
        error=None,
        score=score,
        hits=hits,
        misses=misses,
        accuracy=0.9,
        kpm=120.0,
        peak_kpm=180.0,
        max_combo=12,
        duration=10.0,
        completed_issues=3,
        missed_keys=("x", "q"),
        finished_at=1700000000.0,
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

class TestDefaults:
    def test_settings(self, store: ProgressStore):
        assert store.settings == Settings()
        assert store.settings.source_layout == "JIS"

    def test_empty_statistics(self, store: ProgressStore):
        assert store.total_keystrokes == 0
        assert store.ranking() == []
        assert store.get_mode_best("normal") == ModeBest()

    def test_creates_parent_directory(self, store: ProgressStore, progress_file: Path):
        assert progress_file.parent.is_dir()

    def test_default_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(progress_module.Path, "home", classmethod(lambda cls: tmp_path))
        assert ProgressStore().file_path == tmp_path / ".kanatype" / "progress.json"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:
    def test_update_persists(self, store: ProgressStore, progress_file: Path):
        store.update_settings(target_layout="Colemak", allow_single_n=True)
        reloaded = ProgressStore(progress_file)
        assert reloaded.settings.target_layout == "Colemak"
        assert reloaded.settings.allow_single_n is True

    def test_unknown_setting(self, store: ProgressStore):
        with pytest.raises(KeyError):
            store.update_settings(theme="dark")

    def test_unknown_keys_in_file_are_ignored(self, progress_file: Path):
        progress_file.parent.mkdir(parents=True)
        progress_file.write_text(json.dumps({"settings": {"speed_window": 5, "volume": 3}}), encoding="utf-8")
        store = ProgressStore(progress_file)
        assert store.settings.speed_window == 5


# ---------------------------------------------------------------------------
# Recording sessions
# ---------------------------------------------------------------------------

class TestRecordSession:
    def test_rankable_run(self, store: ProgressStore):
        assert store.record_session(make_summary(score=500)) == 1
        best = store.get_mode_best("normal")
        assert best.played == 1
        assert best.best_score == 500
        assert best.best_kpm == 120.0
        assert store.total_keystrokes == 22

    def test_ranking_is_sorted_by_score(self, store: ProgressStore):
        store.record_session(make_summary(score=300))
        assert store.record_session(make_summary(score=900)) == 1
        assert store.record_session(make_summary(score=600)) == 2
        assert [e.score for e in store.ranking()] == [900, 600, 300]

    def test_ties_rank_below_existing(self, store: ProgressStore):
        store.record_session(make_summary(score=500))
        assert store.record_session(make_summary(score=500)) == 2

    def test_ranking_filtered_by_mode(self, store: ProgressStore):
        store.record_session(make_summary(mode="normal"))
        store.record_session(make_summary(mode="exact"))
        assert [e.mode for e in store.ranking("exact")] == ["exact"]

    def test_ranking_limit(self, store: ProgressStore):
        for i in range(RANKING_LIMIT):
            store.record_session(make_summary(score=1000 + i))
        assert store.record_session(make_summary(score=1)) is None
        assert store.record_session(make_summary(score=5000)) == 1
        assert len(store.ranking()) == RANKING_LIMIT
        assert store.ranking()[-1].score == 1001

    def test_user_exit_only_counts_keystrokes(self, store: ProgressStore):
        summary = make_summary(state=SessionState.ABORTED, reason=AbortReason.USER_EXIT)
        assert store.record_session(summary) is None
        assert store.ranking() == []
        assert store.get_mode_best("normal").played == 0
        assert store.total_keystrokes == 22

    def test_finished_early_is_ranked(self, store: ProgressStore):
        summary = make_summary(state=SessionState.ABORTED, reason=AbortReason.FINISHED_EARLY)
        assert store.record_session(summary) == 1

    def test_run_without_hits_is_not_ranked(self, store: ProgressStore):
        assert store.record_session(make_summary(hits=0, misses=0)) is None

    def test_round_trip(self, store: ProgressStore, progress_file: Path):
        store.record_session(make_summary(score=777))
        reloaded = ProgressStore(progress_file)
        entry = reloaded.ranking()[0]
        assert entry.score == 777
        assert entry.missed_keys == ["x", "q"]
        assert reloaded.get_mode_best("normal").best_score == 777
        assert reloaded.total_keystrokes == 22

    def test_reset_keeps_settings(self, store: ProgressStore):
        store.update_settings(source_layout="US")
        store.record_session(make_summary())
        store.reset()
        assert store.ranking() == []
        assert store.total_keystrokes == 0
        assert store.settings.source_layout == "US"


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestFailures:
    def test_corrupt_json(self, progress_file: Path, caplog: pytest.LogCaptureFixture):
        progress_file.parent.mkdir(parents=True)
        progress_file.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="kanatype.core.progress"):
            store = ProgressStore(progress_file)
        assert store.ranking() == []
        assert "Could not load progress" in caplog.text

    def test_malformed_payload(self, progress_file: Path, caplog: pytest.LogCaptureFixture):
        progress_file.parent.mkdir(parents=True)
        progress_file.write_text(json.dumps({"ranking": [{"score": "lots"}]}), encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="kanatype.core.progress"):
            store = ProgressStore(progress_file)
        assert store.ranking() == []
        assert "malformed" in caplog.text

    def test_top_level_list(self, progress_file: Path, caplog: pytest.LogCaptureFixture):
        progress_file.parent.mkdir(parents=True)
        progress_file.write_text("[]", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="kanatype.core.progress"):
            ProgressStore(progress_file)
        assert "malformed" in caplog.text

    def test_write_failure_is_logged(
        self,
        store: ProgressStore,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ):
        def refuse(self, *args, **kwargs):
            raise OSError("read-only file system")

        monkeypatch.setattr(Path, "write_text", refuse)
        with caplog.at_level(logging.WARNING, logger="kanatype.core.progress"):
            store.record_session(make_summary())
        assert "Could not save progress" in caplog.text
        assert store.total_keystrokes == 22
