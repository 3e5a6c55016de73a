"""The per-run typing state machine.

``TypingSession.handle_key`` holds all game logic and is synchronous; ``run``
is the cooperative loop that feeds it from a :class:`KeyEventSource`, waiting
on exactly one key at a time.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from kanatype.core.key_source import (
    CancellationToken,
    KeyEvent,
    KeyEventSource,
    KeySourceError,
    KeyWaitCancelled,
    cancel_quietly,
)
from kanatype.core.layouts import UNKNOWN_KEY_INDEX, LayoutTable
from kanatype.core.metrics import (
    DEFAULT_SPEED_WINDOW,
    SpeedWindow,
    accuracy,
    combo_bonus,
    keys_per_minute,
    score,
)
from kanatype.core.modes import GameMode
from kanatype.core.phrases import Issue
from kanatype.core.predictor import NextKeyCandidate, NextKeyPredictor, open_unit
from kanatype.core.resolver import SpellingPreference, SpellingResolver
from kanatype.core.romanization import phrase_text
from kanatype.core.translator import position_index, translate

logger = logging.getLogger(__name__)

START_KEY = "Space"
EXIT_KEY = "Escape"


class SessionState(str, Enum):
    AWAITING_START = "awaiting_start"
    ACTIVE = "active"
    ADVANCING = "advancing"
    COMPLETE = "complete"
    ABORTED = "aborted"


TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.AWAITING_START: frozenset({SessionState.ACTIVE, SessionState.ABORTED}),
    SessionState.ACTIVE: frozenset({SessionState.ADVANCING, SessionState.ABORTED}),
    SessionState.ADVANCING: frozenset(
        {SessionState.ACTIVE, SessionState.COMPLETE, SessionState.ABORTED}
    ),
    SessionState.COMPLETE: frozenset(),
    SessionState.ABORTED: frozenset(),
}

TERMINAL_STATES = frozenset({SessionState.COMPLETE, SessionState.ABORTED})


class AbortReason(str, Enum):
    USER_EXIT = "user_exit"
    # Shift+Escape: the run stops but still counts for the ranking.
    FINISHED_EARLY = "finished_early"
    CANCELLED = "cancelled"
    ERROR = "error"


class InvalidTransition(RuntimeError):
    def __init__(self, current: SessionState, target: SessionState) -> None:
        super().__init__(f"Illegal session transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


class EventKind(str, Enum):
    STARTED = "started"
    HIT = "hit"
    MISS = "miss"
    UNIT_TYPED = "unit_typed"
    ISSUE_COMPLETE = "issue_complete"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class SessionContext:
    """Mutable state of one run, owned by a single :class:`TypingSession`."""

    issues: List[Issue]
    speed: SpeedWindow
    preference: SpellingPreference = field(default_factory=SpellingPreference)
    index: int = 0
    typed: str = ""
    candidates: List[NextKeyCandidate] = field(default_factory=list)
    hint: str = ""
    hits: int = 0
    misses: int = 0
    combo: int = 0
    max_combo: int = 0
    extra_score: int = 0
    peak_kpm: float = 0.0
    missed_keys: List[str] = field(default_factory=list)
    last_key_index: int = UNKNOWN_KEY_INDEX
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def keystrokes(self) -> int:
        return self.hits + self.misses

    def current_issue(self) -> Optional[Issue]:
        if self.index < len(self.issues):
            return self.issues[self.index]
        return None

    def next_issue(self) -> Optional[Issue]:
        if self.index + 1 < len(self.issues):
            return self.issues[self.index + 1]
        return None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view handed to the presentation layer."""

    state: SessionState
    issue_index: int
    issue_count: int
    issue: Optional[Issue]
    next_issue: Optional[Issue]
    typed: str
    hint: str
    candidates: Tuple[NextKeyCandidate, ...]
    hits: int
    misses: int
    combo: int
    max_combo: int
    score: int
    kpm: float
    accuracy: float
    speed: Optional[float]
    elapsed: float
    last_key_index: int

    @property
    def expected_letters(self) -> List[str]:
        letters: List[str] = []
        for candidate in self.candidates:
            if candidate.letter not in letters:
                letters.append(candidate.letter)
        return letters


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    snapshot: SessionSnapshot
    key: Optional[str] = None
    kana: Optional[str] = None


@dataclass(frozen=True)
class SessionSummary:
    mode: str
    state: SessionState
    reason: Optional[AbortReason]
    error: Optional[str]
    score: int
    hits: int
    misses: int
    accuracy: float
    kpm: float
    peak_kpm: float
    max_combo: int
    duration: float
    completed_issues: int
    missed_keys: Tuple[str, ...]
    finished_at: float

    @property
    def rankable(self) -> bool:
        if self.hits == 0:
            return False
        return self.state == SessionState.COMPLETE or self.reason == AbortReason.FINISHED_EARLY


Listener = Callable[[SessionEvent], None]


class TypingSession:
    """Drives one practice run from the start key to completion or abort."""

    def __init__(
        self,
        issues: Sequence[Issue],
        mode: GameMode,
        predictor: NextKeyPredictor,
        resolver: SpellingResolver,
        source: LayoutTable,
        target: LayoutTable,
        key_source: Optional[KeyEventSource] = None,
        speed_window: int = DEFAULT_SPEED_WINDOW,
        listener: Optional[Listener] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._mode = mode
        self._predictor = predictor
        self._resolver = resolver
        self._source = source
        self._target = target
        self._key_source = key_source
        self._listener = listener
        self._clock = clock
        self._state = SessionState.AWAITING_START
        self._reason: Optional[AbortReason] = None
        self._error: Optional[str] = None
        self._token: Optional[CancellationToken] = None
        self._cancel_requested = False
        self.context = SessionContext(issues=list(issues), speed=SpeedWindow(speed_window))
        self._refresh()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def reason(self) -> Optional[AbortReason]:
        return self._reason

    @property
    def error(self) -> Optional[str]:
        return self._error

    def is_finished(self) -> bool:
        return self._state in TERMINAL_STATES

    def _transition(self, target: SessionState) -> None:
        if target not in TRANSITIONS[self._state]:
            raise InvalidTransition(self._state, target)
        logger.debug("Session %s -> %s", self._state.value, target.value)
        self._state = target

    # ------------------------------------------------------------------
    # Key handling
    # ------------------------------------------------------------------

    def handle_key(self, event: KeyEvent) -> Optional[EventKind]:
        """Apply one key event; returns the kind of event it produced, if any."""
        if self.is_finished():
            return None
        if self._state == SessionState.AWAITING_START:
            if event.hardware_code == START_KEY:
                self.start()
                return EventKind.STARTED
            if event.hardware_code == EXIT_KEY:
                self.abort(AbortReason.USER_EXIT)
                return EventKind.ABORTED
            return None

        if event.hardware_code == EXIT_KEY:
            self.abort(AbortReason.FINISHED_EARLY if event.shift else AbortReason.USER_EXIT)
            return EventKind.ABORTED

        char = translate(event.hardware_code, event.shift, self._source, self._target)
        if char is None:
            return None
        self.context.last_key_index = position_index(event.hardware_code, self._source)

        matches = [c for c in self.context.candidates if c.letter == char]
        if not matches:
            self._miss(char)
            return EventKind.MISS
        self._hit(self._choose(matches))
        return EventKind.HIT

    def _choose(self, matches: List[NextKeyCandidate]) -> NextKeyCandidate:
        """Prefer the branch whose spelling this key completes."""
        typed = self.context.typed
        return next((c for c in matches if c.completes_unit(typed)), matches[0])

    def start(self) -> None:
        ctx = self.context
        self._transition(SessionState.ACTIVE)
        ctx.preference.reset()
        ctx.start_time = self._clock()
        logger.info("Session started: mode=%s issues=%d", self._mode.key, len(ctx.issues))
        ctx.typed = ""
        self._refresh()
        self._emit(EventKind.STARTED)
        if not ctx.candidates:
            self._advance()

    def abort(self, reason: AbortReason, error: Optional[str] = None) -> None:
        if self.is_finished():
            return
        self._transition(SessionState.ABORTED)
        self._reason = reason
        self._error = error
        self._finish_clock()
        cancel_quietly(self._token)
        if error:
            logger.error("Session aborted (%s): %s", reason.value, error)
        else:
            logger.info("Session aborted: %s", reason.value)
        self._emit(EventKind.ABORTED)

    def cancel(self) -> None:
        """Cancel the pending key wait; the run ends as ``CANCELLED``."""
        self._cancel_requested = True
        cancel_quietly(self._token)

    def _hit(self, candidate: NextKeyCandidate) -> None:
        ctx = self.context
        now = self._clock()
        completes = candidate.completes_unit(ctx.typed)
        text = self._current_text()
        before = open_unit(ctx.candidates, len(text))
        ctx.typed += candidate.letter
        ctx.hits += 1
        ctx.combo += 1
        ctx.max_combo = max(ctx.max_combo, ctx.combo)
        ctx.extra_score += combo_bonus(ctx.combo)
        ctx.speed.push(now)
        instant = ctx.speed.keys_per_second()
        if instant is not None and math.isfinite(instant):
            ctx.peak_kpm = max(ctx.peak_kpm, instant * 60.0)

        if completes and candidate.source_kana and candidate.source_spelling:
            ctx.preference.record(candidate.source_kana, candidate.source_spelling)

        self._refresh()
        after = open_unit(ctx.candidates, len(text))
        self._emit(EventKind.HIT, key=candidate.letter)
        if after > before:
            self._emit(EventKind.UNIT_TYPED, kana=text[before:after])
        if not ctx.candidates:
            self._advance()

    def _miss(self, char: str) -> None:
        ctx = self.context
        ctx.misses += 1
        ctx.combo = 0
        if char not in ctx.missed_keys:
            ctx.missed_keys.append(char)
        if self._mode.reset_on_miss and ctx.typed:
            ctx.typed = ""
            self._refresh()
        self._emit(EventKind.MISS, key=char)

    def _advance(self) -> None:
        ctx = self.context
        self._transition(SessionState.ADVANCING)
        self._emit(EventKind.ISSUE_COMPLETE)
        ctx.index += 1
        if ctx.index >= len(ctx.issues):
            self._transition(SessionState.COMPLETE)
            self._finish_clock()
            logger.info("Session complete: score=%d", self.summary().score)
            self._emit(EventKind.COMPLETED)
            return
        self._transition(SessionState.ACTIVE)
        self._load_issue()

    def _load_issue(self) -> None:
        ctx = self.context
        ctx.typed = ""
        self._refresh()
        if not ctx.candidates:
            # Nothing to type (empty phrase); move straight on.
            self._advance()

    def _refresh(self) -> None:
        ctx = self.context
        issue = ctx.current_issue()
        if issue is None:
            ctx.candidates = []
            ctx.hint = ""
            return
        ctx.candidates = self._predictor.next_keys(issue.reading, ctx.typed)
        ctx.hint = self._resolver.best_guess(issue.reading, ctx.preference, ctx.typed)

    def _current_text(self) -> str:
        issue = self.context.current_issue()
        return phrase_text(issue.reading) if issue is not None else ""

    def _finish_clock(self) -> None:
        if self.context.start_time is not None and self.context.end_time is None:
            self.context.end_time = self._clock()

    # ------------------------------------------------------------------
    # Async loop
    # ------------------------------------------------------------------

    async def run(self) -> SessionSummary:
        """Consume key events until the session reaches a terminal state."""
        if self._key_source is None:
            raise RuntimeError("TypingSession.run() needs a key source")
        while not self.is_finished():
            if self._cancel_requested:
                self.abort(AbortReason.CANCELLED)
                break
            token = CancellationToken()
            self._token = token
            try:
                event = await self._key_source.next_event(token)
            except KeyWaitCancelled:
                self.abort(AbortReason.CANCELLED)
                break
            except KeySourceError as e:
                self.abort(AbortReason.ERROR, str(e))
                break
            finally:
                cancel_quietly(token)
                self._token = None
            self.handle_key(event)
        return self.summary()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def elapsed(self) -> float:
        ctx = self.context
        if ctx.start_time is None:
            return 0.0
        end = ctx.end_time if ctx.end_time is not None else self._clock()
        return max(end - ctx.start_time, 0.0)

    def snapshot(self) -> SessionSnapshot:
        ctx = self.context
        elapsed = self.elapsed()
        instant = ctx.speed.keys_per_second()
        return SessionSnapshot(
            state=self._state,
            issue_index=ctx.index,
            issue_count=len(ctx.issues),
            issue=ctx.current_issue(),
            next_issue=ctx.next_issue(),
            typed=ctx.typed,
            hint=ctx.hint,
            candidates=tuple(ctx.candidates),
            hits=ctx.hits,
            misses=ctx.misses,
            combo=ctx.combo,
            max_combo=ctx.max_combo,
            score=score(ctx.hits, ctx.misses, elapsed, ctx.extra_score),
            kpm=keys_per_minute(ctx.hits, elapsed),
            accuracy=accuracy(ctx.misses, ctx.keystrokes),
            speed=instant,
            elapsed=elapsed,
            last_key_index=ctx.last_key_index,
        )

    def summary(self) -> SessionSummary:
        ctx = self.context
        elapsed = self.elapsed()
        return SessionSummary(
            mode=self._mode.key,
            state=self._state,
            reason=self._reason,
            error=self._error,
            score=score(ctx.hits, ctx.misses, elapsed, ctx.extra_score),
            hits=ctx.hits,
            misses=ctx.misses,
            accuracy=accuracy(ctx.misses, ctx.keystrokes),
            kpm=keys_per_minute(ctx.hits, elapsed),
            peak_kpm=ctx.peak_kpm,
            max_combo=ctx.max_combo,
            duration=elapsed,
            completed_issues=min(ctx.index, len(ctx.issues)),
            missed_keys=tuple(ctx.missed_keys),
            finished_at=time.time(),
        )

    def _emit(self, kind: EventKind, key: Optional[str] = None, kana: Optional[str] = None) -> None:
        if self._listener is not None:
            self._listener(SessionEvent(kind, self.snapshot(), key=key, kana=kana))
