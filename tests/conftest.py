from __future__ import annotations

import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("logitrack.main").app
from logitrack.core.security.passwords import hash_password
from logitrack.core.security.session_tokens import issue_session_token
from logitrack.crud.users import create_user
from logitrack.db.base import Base
from logitrack.db.session import get_db
from logitrack.models.shipment import Shipment
from logitrack.models.users import ROLE_ADMIN, ROLE_USER, User

# Ensure all models are registered with SQLAlchemy metadata
import logitrack.models  # noqa: F401


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = issue_session_token(user_id=user.id, email=user.email, role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_user(db_session):
    def _make(email: str, *, role: str = ROLE_USER, password: str | None = None) -> User:
        return create_user(
            db_session,
            email=email,
            role=role,
            password_hash=hash_password(password) if password else None,
        )

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user("ops@logitrack.example.com", role=ROLE_ADMIN)


@pytest.fixture
def make_shipment(db_session):
    def _make(client_id: str, tracking_number: str, **values) -> Shipment:
        obj = Shipment(
            client_id=client_id,
            tracking_number=tracking_number,
            origin=values.pop("origin", "Rotterdam"),
            destination=values.pop("destination", "Hamburg"),
            **values,
        )
        db_session.add(obj)
        db_session.commit()
        db_session.refresh(obj)
        return obj

    return _make
