# neontype/texts.py
"""
Practice and contest text.

Primary source is Gemini (REST generateContent); when that fails for any
reason we fall back to texts.json, and when that is missing too, to a
built-in sentence. Callers always get text back.

Env / config:
  - GEMINI_API_KEY   (optional; without it we go straight to the fallback)
  - GEMINI_MODEL     default 'gemini-2.5-pro'
  - GEMINI_TIMEOUT   seconds, default 30
  - TEXTS_FILE       path to the fallback JSON ({"1": [...], "2": [...], "5": [...]})
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path

import requests

log = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

TOPICS = [
    "the history of video games", "the science of sleep", "the process of making chocolate",
    "the architecture of skyscrapers", "the basics of quantum physics", "a journey through the Amazon rainforest",
    "the life of a honeybee", "the art of storytelling", "the impact of social media",
    "the exploration of Mars", "the creation of a coral reef",
]

WORD_COUNTS = {"1": 100, "2": 200, "5": 450}

DEFAULT_TEXT = "The quick brown fox jumps over the lazy dog."
DEFAULT_CONTEST_TEXT = (
    "The quick brown fox jumps over the lazy dog. This is a default text because "
    "the primary fallback file could not be read."
)

CONTEST_PROMPT = (
    "Generate a paragraph of about 100 words for a competitive daily typing contest. "
    "The text should be engaging, with a mix of common and slightly complex words, "
    "and contain no special characters or quotes."
)


def word_count_for(minutes) -> int:
    return WORD_COUNTS.get(str(minutes), 100)


def practice_prompt(minutes, topic: str) -> str:
    return (
        f"Generate a paragraph of about {word_count_for(minutes)} words for a typing test. "
        f"The topic is {topic}. The text should be engaging, grammatically correct, "
        f"and contain no special characters or quotes."
    )


def load_fallback_texts(path: str | Path | None) -> dict[str, list[str]]:
    if not path:
        return {}
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.error("Could not load fallback texts from %s: %s", p, e)
        return {}
    if not isinstance(data, dict):
        log.error("Fallback texts in %s must be an object keyed by minutes", p)
        return {}
    out: dict[str, list[str]] = {}
    for k, v in data.items():
        if isinstance(v, list):
            out[str(k)] = [s.strip() for s in v if isinstance(s, str) and s.strip()]
    log.info("Loaded fallback texts from %s (%d groups)", p, len(out))
    return out


def _candidate_text(payload) -> str | None:
    if not isinstance(payload, dict):
        log.warning("Gemini returned an unexpected payload: %s", type(payload).__name__)
        return None
    feedback = payload.get("promptFeedback")
    if isinstance(feedback, dict) and feedback.get("blockReason"):
        log.warning("Prompt was blocked by Gemini. Reason: %s", feedback["blockReason"])
        return None

    candidates = payload.get("candidates")
    first = candidates[0] if isinstance(candidates, list) and candidates else None
    content = first.get("content") if isinstance(first, dict) else None
    if not isinstance(content, dict):
        reason = first.get("finishReason") if isinstance(first, dict) else None
        log.warning("Gemini returned no candidates. Finish reason: %s", reason)
        return None

    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    text = "".join(p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str))
    return text.strip() or None


class TextProvider:
    def __init__(self, api_key: str = "", model: str = "gemini-2.5-pro",
                 timeout: float = 30, texts_file: str | Path | None = None,
                 rng: random.Random | None = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.rng = rng or random.Random()
        self.fallback = load_fallback_texts(texts_file)

    @classmethod
    def from_config(cls, cfg) -> "TextProvider":
        return cls(
            api_key=cfg.get("GEMINI_API_KEY") or "",
            model=cfg.get("GEMINI_MODEL") or "gemini-2.5-pro",
            timeout=float(cfg.get("GEMINI_TIMEOUT") or 30),
            texts_file=cfg.get("TEXTS_FILE"),
        )

    def generate(self, prompt: str) -> str | None:
        """Ask Gemini for text. Any failure is logged and returns None."""
        if not self.api_key:
            log.info("GEMINI_API_KEY not set; skipping generation")
            return None
        url = GEMINI_URL.format(model=self.model)
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            r = requests.post(url, json=body, headers={"x-goog-api-key": self.api_key},
                              timeout=self.timeout)
            r.raise_for_status()
            return _candidate_text(r.json())
        except requests.RequestException as e:
            log.error("Error during Gemini API call: %s", e)
        except ValueError as e:
            log.error("Gemini returned malformed JSON: %s", e)
        return None

    def fallback_text(self, minutes, default: str = DEFAULT_TEXT) -> str:
        options = self.fallback.get(str(minutes)) or []
        if options:
            return self.rng.choice(options)
        return default

    def practice_text(self, minutes) -> str:
        topic = self.rng.choice(TOPICS)
        prompt = practice_prompt(minutes, topic)
        log.info("Generated prompt for practice/test: %r", prompt)
        text = self.generate(prompt)
        if not text:
            log.info("Gemini failed, using fallback texts (%s minute).", minutes)
            text = self.fallback_text(minutes)
        return text.strip()

    def contest_text(self) -> str:
        text = self.generate(CONTEST_PROMPT)
        if not text:
            log.info("Gemini failed, using fallback texts (1 minute) for the contest.")
            text = self.fallback_text("1", default=DEFAULT_CONTEST_TEXT)
        return text.strip()
