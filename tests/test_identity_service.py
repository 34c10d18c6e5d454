from __future__ import annotations

from logitrack.models.users import User
from logitrack.services.identity_service import IdentityService


def test_email_index_covers_every_account(db_session):
    db_session.add_all(User(email=f"client{i:04d}@acme.example.com") for i in range(1200))
    db_session.add(User(email="Mixed.Case@Acme.example.com"))
    db_session.commit()

    index = IdentityService(db_session).email_index()

    assert len(index) == 1201
    assert "client1199@acme.example.com" in index
    assert "mixed.case@acme.example.com" in index
