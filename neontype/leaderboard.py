#neontype/leaderboard.py
from __future__ import annotations
from datetime import date
from .models import Score
from .store import ScoreStore


def _row(s: Score, user_key: str | None) -> dict:
    return {**s.to_public_dict(), "isYou": bool(user_key) and s.user_key == user_key}


def build_leaderboard(store: ScoreStore, user_key: str | None = None,
                      day: date | None = None, limit: int = 10) -> dict:
    """
    Today's contest board: top `limit` scores by wpm then accuracy.
    `userRank` is filled only when the caller's best score of the day
    is not already visible in the top list. Rows never carry emails;
    `isYou` marks the caller's own entries.
    """
    top = store.top_scores(day=day, limit=limit)
    user_rank = None
    if user_key:
        best = store.best_score(user_key, day=day)
        if best is not None and all(s.id != best.id for s in top):
            user_rank = {"rank": store.count_better(best, day=day) + 1, **_row(best, user_key)}
    return {"top10": [_row(s, user_key) for s in top], "userRank": user_rank}
