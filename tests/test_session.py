"""Tests for the typing-test engine.

Time is simulated with ``FakeClock`` and explicit ``tick()`` calls, so no
test sleeps.
"""

from __future__ import annotations

import random

import pytest

from neontype.session import (
    DELETE_KEY,
    CharState,
    FakeClock,
    LoadError,
    SessionState,
    TypingResult,
    TypingSession,
    accuracy_pct,
    format_time,
    js_round,
    performance_level,
)


def _ready(text: str, limit: int = 60, **kw) -> TypingSession:
    s = TypingSession(limit, clock=kw.pop("clock", FakeClock()), **kw)
    s.load(text)
    return s


# ---------------------------------------------------------------------------
# construction / load
# ---------------------------------------------------------------------------

class TestLoad:
    def test_new_session_is_idle(self) -> None:
        s = TypingSession(60)
        assert s.state is SessionState.IDLE
        assert not s.active
        assert s.remaining_seconds == 60

    @pytest.mark.parametrize("bad", [0, -5, 1.5, True, "60"])
    def test_rejects_bad_time_limit(self, bad) -> None:
        with pytest.raises(ValueError):
            TypingSession(bad)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_empty_text_raises_and_stays_idle(self, text) -> None:
        s = TypingSession(60)
        with pytest.raises(LoadError):
            s.load(text)
        assert s.state is SessionState.IDLE
        # keystrokes are not accepted until a valid load
        assert s.keystroke("a") is False
        assert s.cursor == 0

    def test_load_moves_to_ready(self) -> None:
        s = _ready("cat")
        assert s.state is SessionState.READY
        assert s.cursor == 0
        assert s.start_timestamp is None
        assert s.char_states == (CharState.UNTYPED,) * 3
        assert s.current_index == 0

    def test_load_twice_is_rejected(self) -> None:
        s = _ready("cat")
        with pytest.raises(RuntimeError):
            s.load("dog")


# ---------------------------------------------------------------------------
# keystrokes
# ---------------------------------------------------------------------------

class TestKeystrokes:
    def test_first_keystroke_starts_session(self) -> None:
        clock = FakeClock(start=12.5)
        s = _ready("cat", clock=clock)
        assert s.keystroke("c")
        assert s.state is SessionState.ACTIVE
        assert s.start_timestamp == 12.5
        clock.advance(3)
        s.keystroke("a")
        # never reset during the session
        assert s.start_timestamp == 12.5

    def test_correct_and_incorrect_marks(self) -> None:
        s = _ready("cat")
        s.keystroke("c")
        s.keystroke("o")
        assert s.char_states[:2] == (CharState.CORRECT, CharState.INCORRECT)
        assert s.error_count == 1
        assert s.cursor == 2
        assert s.current_index == 2

    def test_cat_scenario(self) -> None:
        s = _ready("cat", limit=60)
        s.keystroke("c")
        s.keystroke("a")
        assert s.live_stats().accuracy == 100
        s.tick()  # one second passes so the result is reportable
        s.keystroke("x")
        assert s.cursor == 3
        assert s.error_count == 1
        assert s.state is SessionState.FINISHED
        assert s.result is not None
        assert s.result.accuracy == 67
        # (3 - 1) chars / 5 over 1/60 minute
        assert s.result.net_wpm == 24

    @pytest.mark.parametrize("key", ["Shift", "ArrowLeft", "", None, "ab", "KEY_LEFT"])
    def test_ignored_keys(self, key) -> None:
        s = _ready("cat")
        assert s.keystroke(key) is False
        assert s.state is SessionState.READY
        assert s.cursor == 0
        assert s.start_timestamp is None

    def test_delete_at_start_is_harmless(self) -> None:
        s = _ready("cat")
        s.keystroke(DELETE_KEY)
        assert s.cursor == 0
        assert s.error_count == 0

    def test_delete_after_error_keeps_error(self) -> None:
        s = _ready("cat")
        s.keystroke("c")
        s.keystroke("x")
        assert (s.cursor, s.error_count) == (2, 1)
        s.keystroke(DELETE_KEY)
        assert (s.cursor, s.error_count) == (1, 1)
        # the mark stays until the position is typed again
        assert s.char_states[1] is CharState.INCORRECT
        assert s.current_index == 1
        s.keystroke("a")
        assert s.char_states[1] is CharState.CORRECT
        assert s.error_count == 1

    def test_full_correct_text_finishes(self) -> None:
        text = "the quick brown fox"
        s = _ready(text)
        for ch in text:
            s.keystroke(ch)
        assert s.cursor == len(text)
        assert s.error_count == 0
        assert s.state is SessionState.FINISHED
        assert not s.active
        assert s.current_index is None

    def test_input_after_finish_is_noop(self) -> None:
        s = _ready("ab")
        s.keystroke("a")
        s.keystroke("b")
        assert s.keystroke("c") is False
        assert s.keystroke(DELETE_KEY) is False
        assert s.cursor == 2


# ---------------------------------------------------------------------------
# timer
# ---------------------------------------------------------------------------

class TestTimer:
    def test_tick_ignored_before_start(self) -> None:
        s = _ready("cat")
        s.tick()
        assert s.remaining_seconds == 60
        assert s.state is SessionState.READY

    def test_ticking_to_zero_finishes_regardless_of_cursor(self) -> None:
        s = _ready("hello world", limit=3)
        s.keystroke("h")
        for _ in range(3):
            s.tick()
        assert s.remaining_seconds == 0
        assert s.state is SessionState.FINISHED
        assert s.cursor == 1
        assert s.keystroke("e") is False
        s.tick()
        assert s.remaining_seconds == 0

    def test_net_wpm_over_full_minute(self) -> None:
        text = "abcde" * 10
        s = _ready(text, limit=60)
        for ch in text[:30]:
            s.keystroke(ch)
        for _ in range(60):
            s.tick()
        assert s.result == TypingResult(
            net_wpm=6, accuracy=100, error_count=0, cursor=30, time_limit_seconds=60,
        )

    def test_empty_but_elapsed_session_is_reportable(self) -> None:
        got = []
        s = _ready("cat", limit=60, on_finish=got.append)
        s.keystroke(DELETE_KEY)  # starts the clock without typing
        for _ in range(60):
            s.tick()
        assert s.state is SessionState.FINISHED
        assert got == [TypingResult(net_wpm=0, accuracy=0, error_count=0,
                                    cursor=0, time_limit_seconds=60)]

    def test_instant_finish_suppresses_result(self) -> None:
        got = []
        s = _ready("hi", on_finish=got.append)
        s.keystroke("h")
        s.keystroke("i")
        assert s.state is SessionState.FINISHED
        assert s.result is None
        assert got == []


# ---------------------------------------------------------------------------
# stats and sink
# ---------------------------------------------------------------------------

class TestStats:
    def test_defaults_before_start(self) -> None:
        stats = _ready("cat").live_stats()
        assert (stats.wpm, stats.accuracy, stats.elapsed_minutes) == (0, 100, 0.0)

    def test_live_wpm_is_gross(self) -> None:
        clock = FakeClock()
        s = _ready("abcdefghij" * 3, clock=clock)
        for ch in "abcdexxxxx":
            s.keystroke(ch)
        clock.advance(30)
        stats = s.live_stats()
        # 10 chars = 2 words in half a minute, errors not subtracted
        assert stats.wpm == 4
        assert stats.accuracy == 50

    def test_stats_freeze_when_finished(self) -> None:
        clock = FakeClock()
        s = _ready("abcde", clock=clock)
        s.keystroke("a")
        clock.advance(30)
        for ch in "bcde":
            s.keystroke(ch)
        assert s.finished
        at_finish = s.live_stats()
        assert at_finish.wpm == 2
        clock.advance(600)
        assert s.live_stats() == at_finish
        assert s.elapsed_minutes() == 0.5

    def test_stats_freeze_when_abandoned(self) -> None:
        clock = FakeClock()
        s = _ready("abcdefghij", clock=clock)
        s.keystroke("a")
        clock.advance(6)
        s.abandon()
        clock.advance(60)
        assert s.elapsed_minutes() == pytest.approx(0.1)

    def test_live_wpm_zero_without_elapsed_time(self) -> None:
        s = _ready("abc")
        s.keystroke("a")
        assert s.live_stats().wpm == 0

    def test_accuracy_clamped_at_zero(self) -> None:
        assert accuracy_pct(1, 3) == 0
        assert accuracy_pct(0, 0) == 100
        assert accuracy_pct(0, 0, empty=0) == 0

    def test_sink_called_once_and_failures_contained(self) -> None:
        calls = []

        def sink(result):
            calls.append(result)
            raise RuntimeError("backend down")

        s = _ready("ab", on_finish=sink)
        s.keystroke("a")
        s.tick()
        s.keystroke("b")
        s.tick()
        assert len(calls) == 1
        assert s.result is calls[0]
        assert s.result.to_dict() == {
            "netWPM": s.result.net_wpm,
            "accuracy": 100,
            "errorCount": 0,
            "cursor": 2,
            "timeLimitSeconds": 60,
        }

    def test_abandon_reports_nothing(self) -> None:
        got = []
        s = _ready("abc", on_finish=got.append)
        s.keystroke("a")
        s.tick()
        s.abandon()
        assert s.state is SessionState.FINISHED
        assert s.result is None
        assert got == []


def test_random_sequences_keep_invariants() -> None:
    rng = random.Random(2024)
    keys = list("abc ") + [DELETE_KEY, "Shift"]
    for _ in range(200):
        # first char is never blank so load() always accepts the text
        text = rng.choice("abc") + "".join(rng.choice("abc ") for _ in range(rng.randint(0, 19)))
        s = _ready(text, limit=rng.randint(1, 10))
        typed = 0
        prev_errors = 0
        for _ in range(rng.randint(0, 40)):
            if rng.random() < 0.2:
                s.tick()
                continue
            key = rng.choice(keys)
            before = s.cursor
            s.keystroke(key)
            if s.cursor > before:
                typed += 1
            assert 0 <= s.cursor <= len(text)
            assert s.error_count >= prev_errors
            assert s.error_count <= typed
            prev_errors = s.error_count
        if s.finished:
            assert not s.active


def test_errors_never_exceed_cursor_without_deletion() -> None:
    rng = random.Random(7)
    for _ in range(100):
        text = "".join(rng.choice("xyz") for _ in range(15))
        s = _ready(text)
        for _ in range(15):
            s.keystroke(rng.choice("xyz"))
            assert s.error_count <= s.cursor


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("wpm, level", [(0, "Beginner"), (39, "Beginner"), (40, "Advanced"),
                                        (60, "Expert"), (79, "Expert"), (80, "Elite")])
def test_performance_level(wpm, level) -> None:
    assert performance_level(wpm) == level


def test_format_time() -> None:
    assert format_time(300) == "05:00"
    assert format_time(59) == "00:59"
    assert format_time(-3) == "00:00"


def test_js_round_half_up() -> None:
    assert js_round(2.5) == 3
    assert js_round(66.666) == 67
    assert js_round(-0.5) == 0
