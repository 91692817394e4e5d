# neontype/store.py
"""
ScoreStore: the one object that talks to the database.

create_app() builds it and registers it under app.extensions["score_store"];
request handlers and the CLI reach it through get_store(). Nothing else keeps
module-level state.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time as dtime, timedelta

from flask import current_app
from sqlalchemy import and_, or_
from sqlalchemy.exc import OperationalError

from .models import db, Score, DailyContest, User

log = logging.getLogger(__name__)

EXTENSION_KEY = "score_store"


def day_window(day: date | None = None) -> tuple[datetime, datetime]:
    # server local time, [00:00, next 00:00)
    d = day or datetime.now().date()
    start = datetime.combine(d, dtime.min)
    return start, start + timedelta(days=1)


class ScoreStore:
    def __init__(self, database=db):
        self.db = database

    @property
    def session(self):
        return self.db.session

    # --- lifecycle -------------------------------------------------------
    def init_app(self, app) -> None:
        # Flask-SQLAlchemy already removes the scoped session on teardown
        app.extensions[EXTENSION_KEY] = self

    def create_all(self) -> None:
        self.db.create_all()

    def drop_all(self) -> None:
        self.db.drop_all()

    def close(self) -> None:
        """Release pooled connections; call at process shutdown."""
        self.db.session.remove()
        self.db.engine.dispose()

    def safe_commit(self, *objs, changes: dict | None = None) -> None:
        """
        Add `objs`, apply `changes` to each, and commit. On a dropped
        connection, rollback and do it all again once: the rollback
        discards pending rows and expires edits, so both are re-applied.
        """
        def attempt():
            for obj in objs:
                for k, v in (changes or {}).items():
                    setattr(obj, k, v)
            self.session.add_all(objs)
            self.session.commit()

        try:
            attempt()
        except OperationalError as e:
            self.session.rollback()
            log.warning("Commit failed (retrying once): %s", e)
            try:
                attempt()
            except Exception:
                self.session.rollback()
                raise

    # --- users -----------------------------------------------------------
    def get_user(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return User.query.filter_by(email=email).first()

    def save_user(self, user: User, **changes) -> User:
        self.safe_commit(user, changes=changes)
        return user

    # --- scores ----------------------------------------------------------
    def save_score(self, *, user_key: str, name: str, email: str | None,
                   wpm: int, accuracy: int, mode: str, time_limit: int | None) -> Score:
        s = Score(user_key=user_key, name=name, email=email, wpm=wpm,
                  accuracy=accuracy, mode=mode, time_limit=time_limit)
        self.safe_commit(s)
        return s

    def _contest_today(self, day: date | None):
        start, end = day_window(day)
        return Score.query.filter(
            Score.mode == "contest",
            Score.created_at >= start,
            Score.created_at < end,
        )

    def has_played(self, user_key: str, day: date | None = None) -> bool:
        return self._contest_today(day).filter(Score.user_key == user_key).first() is not None

    def top_scores(self, day: date | None = None, limit: int = 10) -> list[Score]:
        return (self._contest_today(day)
                .order_by(Score.wpm.desc(), Score.accuracy.desc(), Score.created_at.asc())
                .limit(limit)
                .all())

    def best_score(self, user_key: str, day: date | None = None) -> Score | None:
        return (self._contest_today(day)
                .filter(Score.user_key == user_key)
                .order_by(Score.wpm.desc(), Score.accuracy.desc(), Score.created_at.asc())
                .first())

    def count_better(self, score: Score, day: date | None = None) -> int:
        return self._contest_today(day).filter(
            or_(
                Score.wpm > score.wpm,
                and_(Score.wpm == score.wpm, Score.accuracy > score.accuracy),
            )
        ).count()

    # --- daily contest text ---------------------------------------------
    def daily_text(self, day: str) -> DailyContest | None:
        return DailyContest.query.filter_by(date=day).first()

    def put_daily_text(self, day: str, text: str) -> DailyContest:
        existing = self.daily_text(day)
        if existing:
            return existing
        row = DailyContest(date=day, text=text)
        self.safe_commit(row)
        return row


def get_store() -> ScoreStore:
    return current_app.extensions[EXTENSION_KEY]
