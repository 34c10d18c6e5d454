from __future__ import annotations

from datetime import date

BASE = "/api/v1/shipments"


def test_client_lists_only_own_shipments(client, make_user, make_shipment, auth_headers):
    alice = make_user("alice@acme.example.com")
    bob = make_user("bob@globex.example.com")
    make_shipment(alice.id, "TRK-A1", status="in_transit")
    make_shipment(alice.id, "TRK-A2")
    make_shipment(bob.id, "TRK-B1")

    r = client.get(BASE, headers=auth_headers(alice))
    assert r.status_code == 200
    assert sorted(s["tracking_number"] for s in r.json()["data"]) == ["TRK-A1", "TRK-A2"]

    r = client.get(BASE, params={"status": "in_transit"}, headers=auth_headers(alice))
    assert [s["tracking_number"] for s in r.json()["data"]] == ["TRK-A1"]

    r = client.get(BASE, params={"tracking_number": "a2"}, headers=auth_headers(alice))
    assert [s["tracking_number"] for s in r.json()["data"]] == ["TRK-A2"]


def test_foreign_shipment_is_404_not_403(client, make_user, make_shipment, auth_headers):
    alice = make_user("alice@acme.example.com")
    bob = make_user("bob@globex.example.com")
    shipment = make_shipment(bob.id, "TRK-B1")

    for method, url in (
        ("get", f"{BASE}/{shipment.id}"),
        ("get", f"{BASE}/{shipment.id}/timeline"),
    ):
        r = getattr(client, method)(url, headers=auth_headers(alice))
        assert r.status_code == 404
        assert r.json() == {"error": "Shipment not found"}

    r = client.patch(f"{BASE}/{shipment.id}", json={"status": "delivered"}, headers=auth_headers(alice))
    assert r.status_code == 404

    r = client.post(f"{BASE}/{shipment.id}/timeline", json={"status": "Hacked"}, headers=auth_headers(alice))
    assert r.status_code == 404


def test_unknown_shipment_is_404(client, make_user, auth_headers):
    alice = make_user("alice@acme.example.com")
    r = client.get(f"{BASE}/does-not-exist", headers=auth_headers(alice))
    assert r.status_code == 404


def test_anonymous_is_401(client, db_session):
    assert client.get(BASE).status_code == 401
    assert client.post(BASE, json={}).status_code == 401


def test_create_shipment_is_owned_by_caller(client, make_user, auth_headers):
    alice = make_user("alice@acme.example.com")
    r = client.post(
        BASE,
        json={
            "tracking_number": " TRK-NEW ",
            "origin": "Rotterdam",
            "destination": "Hamburg",
            "estimated_delivery": "2025-02-15",
        },
        headers=auth_headers(alice),
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["client_id"] == alice.id
    assert data["tracking_number"] == "TRK-NEW"
    assert data["status"] == "pending"
    assert data["estimated_delivery"] == "2025-02-15"

    r = client.post(
        BASE,
        json={"tracking_number": "TRK-NEW", "origin": "A", "destination": "B"},
        headers=auth_headers(alice),
    )
    assert r.status_code == 400


def test_create_shipment_validates_input(client, make_user, auth_headers):
    alice = make_user("alice@acme.example.com")
    r = client.post(BASE, json={"tracking_number": "TRK-1", "origin": "A"}, headers=auth_headers(alice))
    assert r.status_code == 400
    assert "error" in r.json()

    r = client.post(
        BASE,
        json={"tracking_number": "TRK-1", "origin": "A", "destination": "B", "status": "lost"},
        headers=auth_headers(alice),
    )
    assert r.status_code == 400


def test_owner_updates_shipment(client, make_user, make_shipment, auth_headers):
    alice = make_user("alice@acme.example.com")
    shipment = make_shipment(alice.id, "TRK-A1")

    r = client.patch(
        f"{BASE}/{shipment.id}",
        json={"status": "delivered", "actual_delivery": "2025-03-01"},
        headers=auth_headers(alice),
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["status"] == "delivered"
    assert data["actual_delivery"] == "2025-03-01"
    assert data["origin"] == "Rotterdam"

    r = client.patch(f"{BASE}/{shipment.id}", json={}, headers=auth_headers(alice))
    assert r.status_code == 400


def test_timeline_is_chronological(client, make_user, make_shipment, auth_headers):
    alice = make_user("alice@acme.example.com")
    shipment = make_shipment(alice.id, "TRK-A1", estimated_delivery=date(2025, 3, 2))
    url = f"{BASE}/{shipment.id}/timeline"

    r = client.post(
        url,
        json={"status": "Departed", "location": "Rotterdam", "timestamp": "2025-03-01T12:00:00+02:00"},
        headers=auth_headers(alice),
    )
    assert r.status_code == 201, r.text
    assert r.json()["data"]["timestamp"] == "2025-03-01T10:00:00"

    r = client.post(
        url,
        json={"status": "Picked up", "timestamp": "2025-03-01T08:00:00Z"},
        headers=auth_headers(alice),
    )
    assert r.status_code == 201

    r = client.get(url, headers=auth_headers(alice))
    assert r.status_code == 200
    assert [e["status"] for e in r.json()["data"]] == ["Picked up", "Departed"]


def test_admin_sees_and_creates_shipments_for_any_client(client, make_user, make_shipment, admin, auth_headers):
    alice = make_user("alice@acme.example.com")
    bob = make_user("bob@globex.example.com")
    make_shipment(alice.id, "TRK-A1")
    make_shipment(bob.id, "TRK-B1")

    r = client.get("/api/v1/admin/shipments", params={"client_id": bob.id}, headers=auth_headers(admin))
    assert r.status_code == 200
    assert [s["tracking_number"] for s in r.json()["data"]] == ["TRK-B1"]

    r = client.post(
        "/api/v1/admin/shipments",
        json={"client_id": alice.id, "tracking_number": "TRK-A9", "origin": "A", "destination": "B"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 201
    assert r.json()["data"]["client_id"] == alice.id

    r = client.get(f"{BASE}/{r.json()['data']['id']}", headers=auth_headers(admin))
    assert r.status_code == 200

    r = client.get("/api/v1/admin/shipments", headers=auth_headers(alice))
    assert r.status_code == 403


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "up"}
