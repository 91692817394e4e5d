# neontype/reporter.py
"""
Client side of the HTTP API, used by the terminal player.

ScoreReporter.report() is the session's result sink: it posts once and
never raises, so a dead backend cannot change what the player sees.
"""

from __future__ import annotations

import logging

import requests

from .session import TypingResult

log = logging.getLogger(__name__)


class ApiError(Exception):
    pass


class ScoreReporter:
    def __init__(self, base_url: str, *, name: str = "", email: str = "",
                 mode: str = "practice", token: str | None = None,
                 timeout: float = 10, http: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.name = name
        self.email = email
        self.mode = mode
        self.timeout = timeout
        self.http = http or requests.Session()
        if token:
            self.http.headers["Authorization"] = f"Bearer {token}"

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/{path.lstrip('/')}"

    def _identity(self) -> dict:
        out = {}
        if self.name:
            out["name"] = self.name
        if self.email:
            out["email"] = self.email
        return out

    def _get_json(self, path: str, params: dict | None = None) -> dict:
        try:
            r = self.http.get(self._url(path), params=params, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except (requests.RequestException, ValueError) as e:
            raise ApiError(f"GET {path} failed: {e}") from e

    # --- text -------------------------------------------------------------
    def fetch_text(self, minutes: int) -> str:
        if self.mode == "contest":
            return self._get_json("daily-contest/text").get("text") or ""
        try:
            r = self.http.post(self._url("generate-text"),
                               json={"timeLimit": minutes, "mode": self.mode},
                               timeout=self.timeout)
            r.raise_for_status()
            return r.json().get("text") or ""
        except (requests.RequestException, ValueError) as e:
            raise ApiError(f"Could not fetch practice text: {e}") from e

    def has_played(self) -> bool:
        return bool(self._get_json("daily-contest/status", self._identity()).get("hasPlayed"))

    def leaderboard(self) -> dict:
        return self._get_json("leaderboard", self._identity())

    # --- result sink ------------------------------------------------------
    def report(self, result: TypingResult) -> bool:
        payload = {
            **self._identity(),
            "wpm": result.net_wpm,
            "accuracy": result.accuracy,
            "mode": self.mode,
            "timeLimit": result.time_limit_seconds // 60,
        }
        try:
            r = self.http.post(self._url("submit-score"), json=payload, timeout=self.timeout)
            r.raise_for_status()
            return True
        except requests.RequestException as e:
            log.error("Error submitting score: %s", e)
            return False
