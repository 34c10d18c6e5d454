from __future__ import annotations

from logitrack.core.config import settings
from logitrack.core.security.session_tokens import issue_magic_link_token

PASSWORD = "Harbour-Crane-42"


def test_login_sets_session_cookie_and_me_returns_principal(client, make_user):
    user = make_user("buyer@acme.example.com", password=PASSWORD)

    r = client.post("/api/v1/auth/login", json={"email": "Buyer@Acme.example.com", "password": PASSWORD})
    assert r.status_code == 200, r.text
    assert r.json()["data"] == {"id": user.id, "email": "buyer@acme.example.com", "role": "user"}
    token = r.cookies[settings.SESSION_COOKIE_NAME]

    r = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["data"]["id"] == user.id


def test_login_rejects_bad_credentials(client, make_user):
    make_user("buyer@acme.example.com", password=PASSWORD)

    r = client.post("/api/v1/auth/login", json={"email": "buyer@acme.example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}

    r = client.post("/api/v1/auth/login", json={"email": "nobody@acme.example.com", "password": PASSWORD})
    assert r.status_code == 401


def test_account_without_password_cannot_log_in(client, make_user):
    make_user("buyer@acme.example.com")
    r = client.post("/api/v1/auth/login", json={"email": "buyer@acme.example.com", "password": "anything"})
    assert r.status_code == 401


def test_magic_link_rejects_tampered_or_stale_tokens(client, make_user):
    user = make_user("buyer@acme.example.com")
    token = issue_magic_link_token(user_id=user.id, email=user.email)

    r = client.get("/api/v1/auth/magic-link", params={"token": token + "x"})
    assert r.status_code == 401

    r = client.get("/api/v1/auth/magic-link", params={"token": issue_magic_link_token(user_id="gone", email=user.email)})
    assert r.status_code == 401

    r = client.get("/api/v1/auth/magic-link", params={"token": token})
    assert r.status_code == 200


def test_magic_link_works_only_once(client, make_user):
    user = make_user("buyer@acme.example.com")
    token = issue_magic_link_token(user_id=user.id, email=user.email)

    r = client.get("/api/v1/auth/magic-link", params={"token": token})
    assert r.status_code == 200

    r = client.get("/api/v1/auth/magic-link", params={"token": token})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or expired sign-in link"}


def test_magic_link_is_spent_by_a_later_password_login(client, make_user):
    user = make_user("buyer@acme.example.com", password=PASSWORD)
    token = issue_magic_link_token(user_id=user.id, email=user.email)

    r = client.post("/api/v1/auth/login", json={"email": user.email, "password": PASSWORD})
    assert r.status_code == 200

    r = client.get("/api/v1/auth/magic-link", params={"token": token})
    assert r.status_code == 401


def test_logout_clears_cookie(client, db_session):
    r = client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"data": {"signed_out": True}}
    assert settings.SESSION_COOKIE_NAME in r.headers.get("set-cookie", "")


def test_me_requires_session(client, db_session):
    r = client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}
