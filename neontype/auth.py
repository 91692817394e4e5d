# neontype/auth.py
from flask import Blueprint, request, jsonify, current_app
from functools import wraps
import jwt, datetime
import requests

from flask_cors import cross_origin

from .models import User
from .store import get_store

auth_bp = Blueprint("auth", __name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleTokenError(Exception):
    pass


# ----------------------------
# JWT helpers
# ----------------------------
def _encode(payload: dict) -> str:
    token = jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm="HS256")
    return token if isinstance(token, str) else token.decode("utf-8")


def create_token(user_id: int) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    days = int(current_app.config.get("JWT_TTL_DAYS") or 7)
    return _encode({
        "sub": str(user_id),
        "iat": now,
        "exp": now + datetime.timedelta(days=days),
    })


def create_registration_token(email: str, google_sub: str | None) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return _encode({
        "typ": "register",
        "email": email,
        "gsub": google_sub,
        "iat": now,
        "exp": now + datetime.timedelta(minutes=30),
    })


def _get_bearer_token():
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


def _user_from_token(token: str) -> User:
    data = jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=["HS256"])
    if data.get("typ"):
        raise jwt.InvalidTokenError("not a session token")
    user = get_store().get_user(int(data["sub"]))
    if not user:
        raise ValueError("User not found")
    return user


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        # Allow CORS preflight without auth
        if request.method == "OPTIONS":
            return ("", 204)

        token = _get_bearer_token()
        if not token:
            return jsonify({"message": "Authorization token is missing"}), 401
        try:
            user = _user_from_token(token)
        except jwt.ExpiredSignatureError:
            return jsonify({"message": "Authorization token has expired"}), 401
        except (jwt.InvalidTokenError, ValueError, KeyError) as e:
            return jsonify({"message": "Authorization token is invalid", "error": str(e)}), 401
        return f(user, *args, **kwargs)
    return decorated


def optional_user() -> User | None:
    """The signed-in user if a valid bearer token came with the request."""
    token = _get_bearer_token()
    if not token:
        return None
    try:
        return _user_from_token(token)
    except (jwt.InvalidTokenError, ValueError, KeyError) as e:
        current_app.logger.info("Ignoring bad bearer token: %s", e)
        return None


def user_key_for(user: User) -> str:
    field = current_app.config.get("USER_KEY_FIELD") or "email"
    return user.name if field == "name" else user.email


# ----------------------------
# Google ID token verification
# ----------------------------
def verify_google_token(id_token: str) -> dict:
    """
    Validate a Google Sign-In credential with Google's tokeninfo endpoint.
    Returns the claims (email, name, sub, ...) or raises GoogleTokenError.
    """
    try:
        r = requests.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token}, timeout=10)
    except requests.RequestException as e:
        raise GoogleTokenError(f"tokeninfo request failed: {e}") from e
    if r.status_code != 200:
        raise GoogleTokenError(f"tokeninfo rejected token (HTTP {r.status_code})")

    try:
        claims = r.json()
    except ValueError as e:
        raise GoogleTokenError("tokeninfo returned invalid JSON") from e
    if not isinstance(claims, dict):
        raise GoogleTokenError("tokeninfo returned unexpected payload")
    client_id = current_app.config.get("GOOGLE_CLIENT_ID")
    if client_id and claims.get("aud") != client_id:
        raise GoogleTokenError("audience mismatch")
    if claims.get("iss") not in GOOGLE_ISSUERS:
        raise GoogleTokenError("unexpected issuer")
    if not claims.get("email") or str(claims.get("email_verified")).lower() != "true":
        raise GoogleTokenError("email not verified")
    return claims


# ----------------------------
# Auth routes
# ----------------------------
@auth_bp.route("/auth/google/signin", methods=["POST", "OPTIONS"])
@cross_origin()
def google_signin():
    data = request.get_json(silent=True) or {}
    id_token = (data.get("token") or "").strip()
    if not id_token:
        return jsonify({"error": "Google credential is required."}), 400

    try:
        claims = verify_google_token(id_token)
    except GoogleTokenError as e:
        current_app.logger.warning("Google sign-in rejected: %s", e)
        return jsonify({"error": "Authentication failed."}), 401

    email = claims["email"].strip().lower()
    user = get_store().get_user_by_email(email)
    if not user:
        return jsonify({
            "isNewUser": True,
            "user": {"email": email, "name": claims.get("name") or email.split("@")[0]},
            "registrationToken": create_registration_token(email, claims.get("sub")),
        }), 200

    return jsonify({"isNewUser": False, "user": user.to_dict(), "token": create_token(user.id)}), 200


@auth_bp.route("/auth/register", methods=["POST", "OPTIONS"])
@cross_origin()
def register():
    data = request.get_json(silent=True) or {}
    reg_token = (data.get("registrationToken") or "").strip()
    name = (data.get("name") or "").strip()
    year_raw = data.get("yearOfBirth")

    if not reg_token or not name:
        return jsonify({"error": "registrationToken and name are required."}), 400
    try:
        year = int(year_raw) if year_raw not in (None, "") else None
    except (TypeError, ValueError):
        return jsonify({"error": "yearOfBirth must be a number."}), 400

    try:
        claims = jwt.decode(reg_token, current_app.config["JWT_SECRET"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return jsonify({"error": "Registration token has expired."}), 401
    except jwt.InvalidTokenError:
        return jsonify({"error": "Invalid registration token."}), 401
    if claims.get("typ") != "register":
        return jsonify({"error": "Invalid registration token."}), 401

    store = get_store()
    email = claims["email"]
    user = store.get_user_by_email(email)
    if user is None:
        user = User(email=email, google_sub=claims.get("gsub"))
        status = 201
    else:
        status = 200
    store.save_user(user, name=name, year_of_birth=year)
    current_app.logger.info("Registered user %s", user.id)

    return jsonify({"user": user.to_dict(), "token": create_token(user.id)}), status


@auth_bp.route("/auth/me", methods=["GET", "OPTIONS"])
@cross_origin()
@token_required
def me(current_user):
    return jsonify(current_user.to_dict())
