from __future__ import annotations

BASE = "/api/v1/admin/users"


def test_admin_lists_users(client, make_user, admin, auth_headers):
    make_user("buyer@acme.example.com")

    r = client.get(BASE, headers=auth_headers(admin))
    assert r.status_code == 200
    emails = sorted(u["email"] for u in r.json()["data"])
    assert emails == ["buyer@acme.example.com", "ops@logitrack.example.com"]
    assert all("password_hash" not in u for u in r.json()["data"])


def test_admin_promotes_user(client, make_user, admin, auth_headers):
    user = make_user("buyer@acme.example.com")

    r = client.patch(f"{BASE}/{user.id}", json={"role": "admin"}, headers=auth_headers(admin))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["role"] == "admin"


def test_role_update_validation(client, make_user, admin, auth_headers):
    user = make_user("buyer@acme.example.com")

    r = client.patch(f"{BASE}/{user.id}", json={"role": "superuser"}, headers=auth_headers(admin))
    assert r.status_code == 400

    r = client.patch(f"{BASE}/{user.id}", json={}, headers=auth_headers(admin))
    assert r.status_code == 400
    assert r.json() == {"error": "role is required"}

    r = client.patch(f"{BASE}/missing", json={"role": "user"}, headers=auth_headers(admin))
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


def test_user_management_is_admin_only(client, make_user, auth_headers):
    user = make_user("buyer@acme.example.com")

    assert client.get(BASE).status_code == 401
    assert client.get(BASE, headers=auth_headers(user)).status_code == 403
    r = client.patch(f"{BASE}/{user.id}", json={"role": "admin"}, headers=auth_headers(user))
    assert r.status_code == 403
