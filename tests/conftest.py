from __future__ import annotations

import json

import pytest

from neontype import create_app
from neontype.store import get_store


@pytest.fixture
def texts_file(tmp_path):
    p = tmp_path / "texts.json"
    p.write_text(json.dumps({
        "1": ["one minute fallback text"],
        "2": ["two minute fallback text"],
    }), encoding="utf-8")
    return p


@pytest.fixture
def app(texts_file):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SQLALCHEMY_ENGINE_OPTIONS": {},
        "JWT_SECRET": "test-secret",
        "GEMINI_API_KEY": "",
        "GOOGLE_CLIENT_ID": "client-123",
        "TEXTS_FILE": str(texts_file),
        "USER_KEY_FIELD": "email",
        "AUTO_INIT_DB": True,
    })
    yield app
    with app.app_context():
        get_store().drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    with app.app_context():
        yield get_store()
