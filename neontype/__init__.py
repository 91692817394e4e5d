# neontype/__init__.py
import re
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from .config import Config
from .models import db
from .store import ScoreStore
from .texts import TextProvider

migrate = Migrate()


def _cors_origins(app) -> list[object] | str:
    if not app.config.get("CORS_STRICT"):
        return "*"
    out: list[object] = []
    for item in app.config.get("CORS_ALLOWED_ORIGINS") or []:
        if isinstance(item, str) and item.startswith("regex:"):
            try:
                out.append(re.compile(item.split(":", 1)[1]))
            except re.error:
                continue
        else:
            out.append(item)
    return out or "*"


def create_app(overrides: dict | None = None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # --- Database + store ---
    db.init_app(app)
    migrate.init_app(app, db)

    store = ScoreStore(db)
    store.init_app(app)

    from .api import TEXTS_KEY
    app.extensions[TEXTS_KEY] = TextProvider.from_config(app.config)

    if app.config.get("AUTO_INIT_DB"):
        with app.app_context():
            store.create_all()

    # --- CORS ---
    cors_origins = _cors_origins(app)
    CORS(
        app,
        resources={r"/api/*": {"origins": cors_origins}},
        supports_credentials=(cors_origins != "*"),
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        expose_headers=["Content-Type", "Authorization"],
    )

    # --- Health ---
    @app.get("/api/healthz")
    def healthz():
        return jsonify(status="ok", time=datetime.now(timezone.utc).isoformat()), 200

    # --- Blueprints ---
    from .auth import auth_bp
    from .api import api_bp

    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(api_bp, url_prefix="/api")

    @app.errorhandler(Exception)
    def on_error(e):
        from werkzeug.exceptions import HTTPException
        if isinstance(e, HTTPException):
            return e
        app.logger.exception("Unhandled error: %s", e)
        return jsonify({"ok": False, "error": "internal_error"}), 500

    return app
