import os
from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient

from staffloan.main import app

client = TestClient(app)

_ENTRY = {"date": "2024-03-04", "start_time": "09:00", "end_time": "17:00", "site_id": "site-host"}


def _mint_token(user_id="staff-1", role="staff") -> str:
    r = client.post("/auth/token", json={"user_id": user_id, "role": role})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def test_missing_authorization_header_401():
    r = client.post("/time_entries", json=_ENTRY)
    assert r.status_code == 401


def test_wrong_scheme_401():
    token = _mint_token()
    r = client.post("/time_entries", json=_ENTRY, headers={"Authorization": f"Basic {token}"})
    assert r.status_code == 401


def test_garbled_bearer_token_401():
    r = client.post("/time_entries", json=_ENTRY, headers={"Authorization": "Bearer not-a-real-token"})
    assert r.status_code == 401


def test_empty_bearer_token_401():
    r = client.get("/time_entries", headers={"Authorization": "Bearer "})
    assert r.status_code == 401


def test_unknown_role_cannot_get_a_token():
    r = client.post("/auth/token", json={"user_id": "someone", "role": "admin"})
    assert r.status_code == 422


def test_token_is_refused_outside_dev_environments(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    r = client.post("/auth/token", json={"user_id": "staff-1", "role": "staff"})
    assert r.status_code == 404


def test_valid_token_reaches_the_route():
    token = _mint_token()
    r = client.get("/time_entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == []


def test_health_is_public():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def _forge(claims: dict) -> str:
    return jwt.encode(claims, os.environ["JWT_SECRET"], algorithm="HS256")


def test_expired_token_401():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = _forge({"sub": "staff-1", "role": "staff", "exp": past})
    r = client.get("/time_entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"


def test_token_without_role_claim_401():
    token = _forge({"sub": "staff-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)})
    r = client.get("/time_entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_with_unknown_role_403():
    token = _forge({"sub": "root", "role": "admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)})
    r = client.get("/time_entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403
