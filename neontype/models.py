# neontype/models.py
# Players, contest scores and the text of each day's contest.

from __future__ import annotations
from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(256), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    year_of_birth = db.Column(db.Integer, nullable=True)
    google_sub = db.Column(db.String(64), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "yearOfBirth": self.year_of_birth,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


class Score(db.Model):
    __tablename__ = "scores"

    id = db.Column(db.Integer, primary_key=True)
    # name or email, depending on USER_KEY_FIELD
    user_key = db.Column(db.String(256), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(256), nullable=True)
    wpm = db.Column(db.Integer, nullable=False)
    accuracy = db.Column(db.Integer, nullable=False)
    mode = db.Column(db.String(20), nullable=False)  # practice | test | contest
    time_limit = db.Column(db.Integer, nullable=True)  # minutes
    created_at = db.Column(db.DateTime, default=datetime.now, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "wpm": self.wpm,
            "accuracy": self.accuracy,
            "mode": self.mode,
            "timeLimit": self.time_limit,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_public_dict(self) -> dict:
        # leaderboard rows are served without auth; no email
        d = self.to_dict()
        d.pop("email", None)
        return d

    def __repr__(self) -> str:
        return f"<Score {self.user_key} wpm={self.wpm} acc={self.accuracy} mode={self.mode}>"


class DailyContest(db.Model):
    __tablename__ = "daily_contests"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), unique=True, nullable=False, index=True)  # YYYY-MM-DD
    text = db.Column(db.Text, nullable=False)

    def __repr__(self) -> str:
        return f"<DailyContest {self.date}>"
