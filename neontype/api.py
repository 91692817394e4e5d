# neontype/api.py
from flask import Blueprint, request, jsonify, current_app
from datetime import datetime

from .auth import optional_user, user_key_for
from .leaderboard import build_leaderboard
from .store import get_store
from .texts import TextProvider

api_bp = Blueprint("api", __name__)

TEXTS_KEY = "text_provider"
SAVED_MODES = ("contest",)


# ---------------------------
# Helpers
# ---------------------------
def get_texts() -> TextProvider:
    return current_app.extensions[TEXTS_KEY]


def _today() -> str:
    return datetime.now().date().isoformat()


def _identity(source) -> tuple[str, str, str | None]:
    """
    (user_key, display name, email) for this request. A valid bearer token
    wins over whatever the client put in the body or query string.
    """
    user = optional_user()
    if user is not None:
        return user_key_for(user), user.name, user.email

    name = (source.get("name") or "").strip()
    email = (source.get("email") or "").strip().lower() or None
    field = current_app.config.get("USER_KEY_FIELD") or "email"
    key = name if field == "name" else (email or "")
    if not name and email:
        name = email.split("@")[0]
    return key, name, email


def _as_int(v):
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(round(float(v)))
    except (TypeError, ValueError):
        return None


# ---------------------------
# Text
# ---------------------------
@api_bp.route("/generate-text", methods=["POST"])
def generate_text():
    data = request.get_json(silent=True) or {}
    minutes = data.get("timeLimit") or 1
    try:
        text = get_texts().practice_text(minutes)
    except Exception as e:
        current_app.logger.exception("Text generation failed: %s", e)
        return jsonify({"error": "Failed to generate text"}), 500
    return jsonify({"text": text})


@api_bp.route("/daily-contest/status", methods=["GET"])
def daily_contest_status():
    key, _name, _email = _identity(request.args)
    if not key:
        return jsonify({"error": "User identity is required."}), 400
    return jsonify({"hasPlayed": get_store().has_played(key)})


@api_bp.route("/daily-contest/text", methods=["GET"])
def daily_contest_text():
    contest = get_store().daily_text(_today())
    if contest is None:
        return jsonify({"error": "Today's contest is not yet available."}), 404
    return jsonify({"text": contest.text})


# ---------------------------
# Scores
# ---------------------------
@api_bp.route("/submit-score", methods=["POST"])
def submit_score():
    data = request.get_json(silent=True) or {}
    key, name, email = _identity(data)
    wpm = _as_int(data.get("wpm"))
    accuracy = _as_int(data.get("accuracy"))
    mode = (data.get("mode") or "").strip().lower()

    if not key or wpm is None or accuracy is None:
        return jsonify({"error": "Invalid score data."}), 400

    # only contest runs go on the board
    if mode not in SAVED_MODES:
        return jsonify({"message": "Practice/Test score received but not saved."}), 200

    store = get_store()
    if store.has_played(key):
        return jsonify({"error": "Today's contest has already been completed."}), 409

    entry = store.save_score(
        user_key=key, name=name, email=email,
        wpm=wpm, accuracy=max(0, min(100, accuracy)),
        mode=mode, time_limit=_as_int(data.get("timeLimit")),
    )
    current_app.logger.info("Contest score saved: %r", entry)
    return jsonify({"message": "Contest score submitted successfully!", "entry": entry.to_dict()}), 201


@api_bp.route("/leaderboard", methods=["GET"])
def leaderboard():
    key, _name, _email = _identity(request.args)
    return jsonify(build_leaderboard(get_store(), user_key=key or None))
