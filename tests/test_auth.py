"""Google sign-in, registration and bearer-token identity."""

from __future__ import annotations

import datetime

import jwt
import pytest
import requests

from neontype import auth as auth_mod


class _Resp:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


CLAIMS = {
    "aud": "client-123",
    "iss": "https://accounts.google.com",
    "email": "Grace@Example.com",
    "email_verified": "true",
    "name": "Grace Hopper",
    "sub": "g-42",
}


@pytest.fixture
def google_ok(monkeypatch):
    monkeypatch.setattr(auth_mod.requests, "get", lambda *a, **k: _Resp(200, dict(CLAIMS)))


def _signin(client):
    return client.post("/api/auth/google/signin", json={"token": "google-id-token"})


def _register(client, reg_token, name="Grace", year=1906):
    return client.post("/api/auth/register", json={
        "registrationToken": reg_token, "name": name, "yearOfBirth": year,
    })


def test_signin_requires_token(client):
    r = client.post("/api/auth/google/signin", json={})
    assert r.status_code == 400


def test_signin_new_then_existing_user(client, google_ok):
    r = _signin(client)
    assert r.status_code == 200
    body = r.get_json()
    assert body["isNewUser"] is True
    assert body["user"] == {"email": "grace@example.com", "name": "Grace Hopper"}

    r = _register(client, body["registrationToken"])
    assert r.status_code == 201
    reg = r.get_json()
    assert reg["user"]["email"] == "grace@example.com"
    assert reg["user"]["yearOfBirth"] == 1906

    r = _signin(client)
    body = r.get_json()
    assert body["isNewUser"] is False
    assert body["user"]["name"] == "Grace"
    assert body["token"]


@pytest.mark.parametrize("change", [
    {"aud": "someone-else"},
    {"iss": "evil.example.com"},
    {"email_verified": "false"},
])
def test_signin_rejects_bad_claims(client, monkeypatch, change):
    claims = {**CLAIMS, **change}
    monkeypatch.setattr(auth_mod.requests, "get", lambda *a, **k: _Resp(200, claims))
    assert _signin(client).status_code == 401


def test_signin_rejected_by_google(client, monkeypatch):
    monkeypatch.setattr(auth_mod.requests, "get", lambda *a, **k: _Resp(400, {"error": "invalid_token"}))
    assert _signin(client).status_code == 401


def test_signin_tokeninfo_not_json(client, monkeypatch):
    class _HtmlResp(_Resp):
        def json(self):
            raise ValueError("Expecting value: line 1 column 1 (char 0)")

    monkeypatch.setattr(auth_mod.requests, "get", lambda *a, **k: _HtmlResp(200, None))
    assert _signin(client).status_code == 401


def test_signin_network_failure(client, monkeypatch):
    def down(*a, **k):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr(auth_mod.requests, "get", down)
    assert _signin(client).status_code == 401


def test_register_validation(client, google_ok):
    reg_token = _signin(client).get_json()["registrationToken"]
    assert _register(client, "", name="x").status_code == 400
    assert _register(client, reg_token, name="").status_code == 400
    assert _register(client, reg_token, year="long ago").status_code == 400
    assert _register(client, "garbage").status_code == 401


def test_register_rejects_session_token(client, google_ok):
    reg_token = _signin(client).get_json()["registrationToken"]
    token = _register(client, reg_token).get_json()["token"]
    assert _register(client, token).status_code == 401


def test_me_and_token_errors(client, app, google_ok):
    reg_token = _signin(client).get_json()["registrationToken"]
    token = _register(client, reg_token).get_json()["token"]

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.get_json()["email"] == "grace@example.com"

    assert client.get("/api/auth/me").status_code == 401
    # registration tokens are not session tokens
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {reg_token}"})
    assert r.status_code == 401

    past = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(days=1)
    expired = jwt.encode({"sub": "1", "exp": past}, app.config["JWT_SECRET"], algorithm="HS256")
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert "expired" in r.get_json()["message"]


def test_bearer_token_overrides_body_identity(client, google_ok):
    reg_token = _signin(client).get_json()["registrationToken"]
    token = _register(client, reg_token).get_json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    r = client.post("/api/submit-score", headers=headers, json={
        "name": "Someone", "email": "someone@else.com",
        "wpm": 70, "accuracy": 99, "mode": "contest", "timeLimit": 1,
    })
    assert r.status_code == 201
    entry = r.get_json()["entry"]
    assert entry["email"] == "grace@example.com"
    assert entry["name"] == "Grace"

    r = client.get("/api/daily-contest/status", headers=headers)
    assert r.get_json() == {"hasPlayed": True}


def test_only_known_auth_routes(app):
    rules = {r.rule for r in app.url_map.iter_rules() if "/auth/" in r.rule}
    assert rules == {"/api/auth/google/signin", "/api/auth/register", "/api/auth/me"}
