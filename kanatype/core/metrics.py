"""Speed and score arithmetic shared by the session controller and the UI."""

from __future__ import annotations

import math
from collections import deque
from typing import Deque, Optional

DEFAULT_SPEED_WINDOW = 10
COMBO_BONUS_THRESHOLD = 20
COMBO_BONUS_FACTOR = 10


class SpeedWindow:
    """Timestamps of the last ``size`` correct keystrokes."""

    def __init__(self, size: int = DEFAULT_SPEED_WINDOW) -> None:
        if size < 2:
            raise ValueError("speed window needs at least two keystrokes")
        self._stamps: Deque[float] = deque(maxlen=size)

    @property
    def size(self) -> int:
        return self._stamps.maxlen or 0

    def __len__(self) -> int:
        return len(self._stamps)

    def is_full(self) -> bool:
        return len(self._stamps) == self.size

    def push(self, timestamp: float) -> None:
        self._stamps.append(timestamp)

    def clear(self) -> None:
        self._stamps.clear()

    def keys_per_second(self) -> Optional[float]:
        """None until the window is full."""
        if not self.is_full():
            return None
        span = self._stamps[-1] - self._stamps[0]
        if span <= 0:
            return math.inf
        return (len(self._stamps) - 1) / span


def keys_per_minute(hits: int, elapsed_seconds: float) -> float:
    if elapsed_seconds <= 0:
        return 0.0
    return hits / elapsed_seconds * 60.0


def accuracy(misses: int, keystrokes: int) -> float:
    """Share of keystrokes that were hits, 0.0 - 1.0."""
    if keystrokes <= 0:
        return 1.0
    return 1.0 - misses / keystrokes


def score(hits: int, misses: int, elapsed_seconds: float, extra: int = 0) -> int:
    """kpm weighted by accuracy cubed, plus the combo pool."""
    kpm = keys_per_minute(hits, elapsed_seconds)
    return int(kpm * accuracy(misses, hits + misses) ** 3 * 100) + extra


def is_fibonacci(n: int) -> bool:
    if n < 0:
        return False
    # n is Fibonacci iff 5n^2 + 4 or 5n^2 - 4 is a perfect square.
    for candidate in (5 * n * n + 4, 5 * n * n - 4):
        if candidate >= 0 and math.isqrt(candidate) ** 2 == candidate:
            return True
    return False


def combo_bonus(combo: int) -> int:
    if combo > COMBO_BONUS_THRESHOLD and is_fibonacci(combo):
        return combo * COMBO_BONUS_FACTOR
    return 0
