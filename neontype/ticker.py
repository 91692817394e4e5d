# neontype/ticker.py
"""
One-second countdown for a typing session.

``Ticker`` is a cancellable recurring timer on a daemon thread. Once
``cancel()`` has returned (from any thread other than the ticker's own), the
callback will not run again.

``SessionDriver`` owns a session and its ticker and serialises keystrokes and
ticks through one lock, so the engine only ever sees one event at a time.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .session import TypingSession

log = logging.getLogger(__name__)


class Ticker:
    def __init__(self, callback: Callable[[], None], interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._callback = callback
        self._interval = float(interval)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="neontype-ticker", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._callback()
            except Exception:
                log.exception("tick callback failed")


class SessionDriver:
    def __init__(self, session: TypingSession, interval: float = 1.0) -> None:
        self.session = session
        self._lock = threading.Lock()
        self._closed = False
        self._ticker = Ticker(self._on_tick, interval=interval)

    @property
    def ticking(self) -> bool:
        return self._ticker.running

    def keystroke(self, key: Optional[str]) -> bool:
        with self._lock:
            if self._closed:
                return False
            accepted = self.session.keystroke(key)
            started = self.session.active
            done = self.session.finished
        if done:
            self._ticker.cancel()
        elif started:
            self._ticker.start()
        return accepted

    def _on_tick(self) -> None:
        with self._lock:
            if self._closed:
                return
            self.session.tick()
            done = self.session.finished
        if done:
            self._ticker.cancel()

    def close(self) -> None:
        """Abandon the session and stop the countdown."""
        with self._lock:
            self._closed = True
            self.session.abandon()
        self._ticker.cancel()

    def __enter__(self) -> "SessionDriver":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
