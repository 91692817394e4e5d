# neontype/session.py
"""
Typing-test engine.

A ``TypingSession`` consumes keystrokes and one-second ticks and keeps the
live statistics for a single test:

    IDLE --load(text)--> READY --first keystroke--> ACTIVE --end/timeout--> FINISHED

The engine performs no I/O and knows nothing about rendering. A view reads
``char_states`` / ``current_index`` and the stats; a result sink receives the
final ``TypingResult`` through ``on_finish``.
"""

from __future__ import annotations

import enum
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

log = logging.getLogger(__name__)

DELETE_KEY = "Backspace"
CHARS_PER_WORD = 5


class Clock(Protocol):
    """Monotonic clock; the engine never calls real time directly."""

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    def now(self) -> float:
        return time.monotonic()


class FakeClock:
    """Manually advanced clock for tests and headless runs."""

    def __init__(self, start: float = 0.0) -> None:
        self._t = float(start)

    def now(self) -> float:
        return self._t

    def advance(self, seconds: float) -> None:
        self._t += float(seconds)


class SessionState(enum.Enum):
    IDLE = "idle"
    READY = "ready"
    ACTIVE = "active"
    FINISHED = "finished"


class CharState(enum.Enum):
    UNTYPED = "untyped"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class LoadError(ValueError):
    """Reference text is missing or blank."""


@dataclass(frozen=True)
class LiveStats:
    wpm: int
    accuracy: int
    elapsed_minutes: float


@dataclass(frozen=True)
class TypingResult:
    net_wpm: int
    accuracy: int
    error_count: int
    cursor: int
    time_limit_seconds: int

    def to_dict(self) -> dict:
        return {
            "netWPM": self.net_wpm,
            "accuracy": self.accuracy,
            "errorCount": self.error_count,
            "cursor": self.cursor,
            "timeLimitSeconds": self.time_limit_seconds,
        }


# -----------------------------------------------------------------------------
# Formulas
# -----------------------------------------------------------------------------

def js_round(x: float) -> int:
    # half rounds up, like Math.round in the browser build
    return int(math.floor(x + 0.5))


def accuracy_pct(cursor: int, errors: int, empty: int = 100) -> int:
    if cursor <= 0:
        return empty
    return max(0, js_round((cursor - errors) / cursor * 100))


def gross_wpm(cursor: int, elapsed_minutes: float) -> int:
    if elapsed_minutes <= 0:
        return 0
    return js_round(cursor / CHARS_PER_WORD / elapsed_minutes)


def net_wpm(cursor: int, errors: int, elapsed_minutes: float) -> int:
    return js_round((cursor - errors) / CHARS_PER_WORD / elapsed_minutes)


def performance_level(wpm: int) -> str:
    if wpm >= 80:
        return "Elite"
    if wpm >= 60:
        return "Expert"
    if wpm >= 40:
        return "Advanced"
    return "Beginner"


def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------

class TypingSession:
    def __init__(
        self,
        time_limit_seconds: int,
        clock: Optional[Clock] = None,
        on_finish: Optional[Callable[[TypingResult], None]] = None,
    ) -> None:
        if isinstance(time_limit_seconds, bool) or not isinstance(time_limit_seconds, int):
            raise ValueError("time_limit_seconds must be an integer")
        if time_limit_seconds <= 0:
            raise ValueError("time_limit_seconds must be positive")

        self._clock: Clock = clock or RealClock()
        self._on_finish = on_finish
        self._time_limit = time_limit_seconds
        self._remaining = time_limit_seconds

        self._state = SessionState.IDLE
        self._text = ""
        self._marks: list[CharState] = []
        self._cursor = 0
        self._errors = 0
        self._start: Optional[float] = None
        self._end: Optional[float] = None
        self._result: Optional[TypingResult] = None

    # --- read-only view ---------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def reference_text(self) -> str:
        return self._text

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def error_count(self) -> int:
        return self._errors

    @property
    def start_timestamp(self) -> Optional[float]:
        return self._start

    @property
    def time_limit_seconds(self) -> int:
        return self._time_limit

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def finished(self) -> bool:
        return self._state is SessionState.FINISHED

    @property
    def result(self) -> Optional[TypingResult]:
        return self._result

    @property
    def char_states(self) -> tuple[CharState, ...]:
        return tuple(self._marks)

    @property
    def current_index(self) -> Optional[int]:
        if self._state in (SessionState.IDLE, SessionState.FINISHED):
            return None
        return self._cursor if self._cursor < len(self._text) else None

    # --- transitions ------------------------------------------------------
    def load(self, text: Optional[str]) -> None:
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"cannot load text in state {self._state.value}")
        if not text or not text.strip():
            raise LoadError("reference text is empty")
        self._text = text
        self._marks = [CharState.UNTYPED] * len(text)
        self._state = SessionState.READY

    def keystroke(self, key: Optional[str]) -> bool:
        """Feed one key. Returns True when the key was accepted."""
        if self._state not in (SessionState.READY, SessionState.ACTIVE):
            return False
        if self._remaining <= 0:
            return False

        is_delete = key == DELETE_KEY
        if not is_delete and (not isinstance(key, str) or len(key) != 1):
            return False

        if self._state is SessionState.READY:
            self._start = self._clock.now()
            self._state = SessionState.ACTIVE

        if is_delete:
            if self._cursor > 0:
                self._cursor -= 1
            return True

        if self._cursor >= len(self._text):
            return False

        if key == self._text[self._cursor]:
            self._marks[self._cursor] = CharState.CORRECT
        else:
            self._marks[self._cursor] = CharState.INCORRECT
            self._errors += 1
        self._cursor += 1

        if self._cursor == len(self._text):
            self._finish()
        return True

    def tick(self) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self._finish()

    def abandon(self) -> None:
        """Stop without reporting (user navigated away)."""
        if self._state is SessionState.FINISHED:
            return
        self._state = SessionState.FINISHED
        if self._start is not None:
            self._end = self._clock.now()

    # --- stats ------------------------------------------------------------
    def elapsed_minutes(self) -> float:
        if self._start is None:
            return 0.0
        # frozen once the session is over
        now = self._end if self._end is not None else self._clock.now()
        return max(0.0, now - self._start) / 60

    def live_stats(self) -> LiveStats:
        if self._start is None:
            return LiveStats(wpm=0, accuracy=100, elapsed_minutes=0.0)
        elapsed = self.elapsed_minutes()
        return LiveStats(
            wpm=gross_wpm(self._cursor, elapsed),
            accuracy=accuracy_pct(self._cursor, self._errors),
            elapsed_minutes=elapsed,
        )

    def _finish(self) -> None:
        self._state = SessionState.FINISHED
        self._end = self._clock.now()

        elapsed = (self._time_limit - self._remaining) / 60
        if elapsed == 0:
            log.debug("session finished with zero elapsed time; no result")
            return

        self._result = TypingResult(
            net_wpm=net_wpm(self._cursor, self._errors, elapsed),
            accuracy=accuracy_pct(self._cursor, self._errors, empty=0),
            error_count=self._errors,
            cursor=self._cursor,
            time_limit_seconds=self._time_limit,
        )
        if self._on_finish is None:
            return
        try:
            self._on_finish(self._result)
        except Exception:
            log.exception("result sink failed")
