# neontype/config.py
import os, secrets
from pathlib import Path
from urllib.parse import urlparse, urlsplit, urlunsplit, parse_qsl, urlencode

PACKAGE_DIR = Path(__file__).resolve().parent

# ---------- helpers ----------
def _origin(url: str) -> str | None:
    try:
        p = urlparse(url or "")
        if not p.scheme or not p.hostname:
            return None
        port = f":{p.port}" if p.port else ""
        return f"{p.scheme}://{p.hostname}{port}"
    except Exception:
        return None

def _add_query_params(url: str, extra: dict[str, str]) -> str:
    if not url:
        return url
    p = urlsplit(url)
    q = dict(parse_qsl(p.query, keep_blank_values=True))
    for k, v in extra.items():
        q.setdefault(k, v)
    return urlunsplit((p.scheme, p.netloc, p.path, urlencode(q), p.fragment))

def canon_db_url(url: str | None) -> str:
    """
    Hosted Postgres hands out postgres://; SQLAlchemy wants postgresql://.
    Remote Postgres also gets sslmode/timeouts. SQLite is left alone.
    """
    if not url:
        return ""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if not url.startswith("postgresql"):
        return url
    host = urlparse(url).hostname or ""
    if host in ("localhost", "127.0.0.1"):
        return url
    return _add_query_params(
        url,
        {
            "sslmode": "require",
            "connect_timeout": os.getenv("DB_CONNECT_TIMEOUT", "10"),
        },
    )

def env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in ("1", "true", "yes", "on")

def resolve_db_url() -> str:
    for name in ("DATABASE_URL", "DATABASE_CONNECTION_STRING", "DB_URL", "SQLALCHEMY_DATABASE_URI"):
        raw = os.getenv(name)
        if raw:
            return canon_db_url(raw)
    return "sqlite:///neontype.db"

# ---------- base URLs ----------
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3000")
FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "http://localhost:5500")

# ---------- CORS ----------
DEFAULT_CORS = [
    _origin(FRONTEND_BASE_URL),
    _origin(API_BASE_URL),
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5500",
    "http://localhost:5500",
]

def _merge_origins(*lists):
    out = []
    for lst in lists:
        for o in lst or []:
            v = _origin(o.strip()) if o else None
            if v and v not in out:
                out.append(v)
    return out

EXTRA_CORS = [s.strip() for s in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if s.strip()]
CORS_ALLOWED_ORIGINS = _merge_origins(DEFAULT_CORS, EXTRA_CORS)

# ---------- Gemini ----------
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")
GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", "30"))

# ---------- Google Sign-In ----------
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")

# ---------- texts ----------
TEXTS_FILE = os.getenv("TEXTS_FILE") or str(PACKAGE_DIR / "texts.json")

# ---------- identity ----------
# "email" (Google sign-in builds) or "name" (anonymous builds)
USER_KEY_FIELD = (os.getenv("USER_KEY_FIELD") or "email").strip().lower()

# ---------- canonical Config used by Flask ----------
class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY") or ("dev-" + secrets.token_urlsafe(32))
    JWT_SECRET = os.getenv("JWT_SECRET") or SECRET_KEY
    JWT_TTL_DAYS = int(os.getenv("JWT_TTL_DAYS", "7"))

    FRONTEND_BASE_URL = FRONTEND_BASE_URL
    API_BASE_URL = API_BASE_URL

    # SQLAlchemy/general
    SQLALCHEMY_DATABASE_URI = resolve_db_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    JSON_AS_ASCII = False
    AUTO_INIT_DB = env_bool("AUTO_INIT_DB", True)

    # External services
    GEMINI_API_KEY = GEMINI_API_KEY
    GEMINI_MODEL = GEMINI_MODEL
    GEMINI_TIMEOUT = GEMINI_TIMEOUT
    GOOGLE_CLIENT_ID = GOOGLE_CLIENT_ID
    TEXTS_FILE = TEXTS_FILE

    USER_KEY_FIELD = USER_KEY_FIELD

    # CORS
    CORS_ALLOWED_ORIGINS = CORS_ALLOWED_ORIGINS
    CORS_STRICT = env_bool("CORS_STRICT", False)
