from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from logitrack.core.config import settings
from logitrack.crud import documents as documents_crud

BASE = "/api/v1/documents"
PDF_BYTES = b"%PDF-1.4\n% bill of lading\n"


@pytest.fixture
def storage_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DOCUMENT_STORAGE_DIR", str(tmp_path))
    return tmp_path


def _upload(client, headers, shipment_id, payload=PDF_BYTES, filename="bill-of-lading.pdf"):
    return client.post(
        BASE,
        headers=headers,
        data={"shipment_id": shipment_id},
        files={"file": (filename, payload, "application/pdf")},
    )


def test_upload_list_download_delete(client, storage_dir, make_user, make_shipment, auth_headers):
    alice = make_user("alice@acme.example.com")
    shipment = make_shipment(alice.id, "TRK-A1")
    headers = auth_headers(alice)

    r = _upload(client, headers, shipment.id)
    assert r.status_code == 201, r.text
    document = r.json()["data"]
    assert document["file_name"] == "bill-of-lading.pdf"
    assert document["file_type"] == "application/pdf"
    assert document["file_size"] == len(PDF_BYTES)
    assert document["file_url"].endswith(f"/api/v1/documents/{document['id']}/download")

    stored = list(Path(storage_dir).rglob("*.pdf"))
    assert len(stored) == 1
    assert stored[0].relative_to(storage_dir).parts[:2] == ("shipments", shipment.id)

    r = client.get(BASE, params={"shipment_id": shipment.id}, headers=headers)
    assert [d["id"] for d in r.json()["data"]] == [document["id"]]

    r = client.get(f"{BASE}/{document['id']}/download", headers=headers)
    assert r.status_code == 200
    assert r.content == PDF_BYTES

    r = client.delete(f"{BASE}/{document['id']}", headers=headers)
    assert r.status_code == 200
    assert list(Path(storage_dir).rglob("*.pdf")) == []
    assert client.get(BASE, headers=headers).json()["data"] == []


def test_documents_of_other_clients_are_invisible(client, storage_dir, make_user, make_shipment, auth_headers):
    alice = make_user("alice@acme.example.com")
    bob = make_user("bob@globex.example.com")
    shipment = make_shipment(alice.id, "TRK-A1")
    document = _upload(client, auth_headers(alice), shipment.id).json()["data"]

    bob_headers = auth_headers(bob)
    assert client.get(BASE, headers=bob_headers).json()["data"] == []
    assert client.get(BASE, params={"shipment_id": shipment.id}, headers=bob_headers).status_code == 404
    assert client.get(f"{BASE}/{document['id']}/download", headers=bob_headers).status_code == 404
    assert client.delete(f"{BASE}/{document['id']}", headers=bob_headers).status_code == 404
    assert _upload(client, bob_headers, shipment.id).status_code == 404


def test_admin_can_manage_any_document(client, storage_dir, make_user, make_shipment, admin, auth_headers):
    alice = make_user("alice@acme.example.com")
    shipment = make_shipment(alice.id, "TRK-A1")

    r = _upload(client, auth_headers(admin), shipment.id)
    assert r.status_code == 201
    assert client.get(BASE, headers=auth_headers(alice)).json()["data"][0]["id"] == r.json()["data"]["id"]
    assert client.delete(f"{BASE}/{r.json()['data']['id']}", headers=auth_headers(admin)).status_code == 200


def test_upload_validation(client, storage_dir, make_user, make_shipment, auth_headers, monkeypatch):
    alice = make_user("alice@acme.example.com")
    shipment = make_shipment(alice.id, "TRK-A1")
    headers = auth_headers(alice)

    r = client.post(BASE, headers=headers, data={"shipment_id": shipment.id})
    assert r.status_code == 400

    r = _upload(client, headers, shipment.id, payload=b"")
    assert r.status_code == 400

    monkeypatch.setattr(settings, "DOCUMENT_MAX_BYTES", 4)
    r = _upload(client, headers, shipment.id)
    assert r.status_code == 400

    r = _upload(client, headers, "no-such-shipment")
    assert r.status_code == 404


def test_upload_removes_stored_file_when_metadata_insert_fails(
    client, storage_dir, make_user, make_shipment, auth_headers, monkeypatch
):
    alice = make_user("alice@acme.example.com")
    shipment = make_shipment(alice.id, "TRK-A1")

    def _fail(db, values):
        raise OperationalError("INSERT INTO documents", {}, Exception("database is locked"))

    monkeypatch.setattr(documents_crud, "create_document", _fail)

    r = _upload(client, auth_headers(alice), shipment.id)
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to upload file"}
    assert [p for p in Path(storage_dir).rglob("*") if p.is_file()] == []
