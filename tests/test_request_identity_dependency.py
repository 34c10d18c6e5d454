from __future__ import annotations

import jwt
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from logitrack.api.deps import request_identity as request_identity_module
from logitrack.core.config import settings
from logitrack.core.errors import ApiError
from logitrack.core.security.request_auth_context import get_current_principal
from logitrack.core.security.session_tokens import issue_magic_link_token, issue_session_token
from logitrack.schemas.principal import Principal


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.exception_handler(ApiError)
    async def _api_error(_request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.get("/whoami")
    def whoami(principal: Principal = Depends(request_identity_module.get_principal)):
        current = get_current_principal()
        return {
            "id": principal.id,
            "email": principal.email,
            "role": principal.role,
            "context_id": current.id if current else None,
        }

    @app.get("/admin-only")
    def admin_only(principal: Principal = Depends(request_identity_module.require_action("admin.users.list"))):
        return {"id": principal.id}

    return app


def _session(role: str = "user") -> str:
    return issue_session_token(user_id="u-1", email="Client@Example.com", role=role)


def test_session_cookie_resolves_principal():
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Cookie": f"{settings.SESSION_COOKIE_NAME}={_session()}"})
        assert r.status_code == 200
        payload = r.json()
        assert payload["id"] == "u-1"
        assert payload["email"] == "client@example.com"
        assert payload["role"] == "user"


def test_bearer_token_resolves_principal_and_request_context():
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {_session('admin')}"})
        assert r.status_code == 200
        assert r.json()["role"] == "admin"
        assert r.json()["context_id"] == "u-1"


def test_missing_token_is_401():
    with TestClient(_build_app()) as client:
        r = client.get("/whoami")
        assert r.status_code == 401
        assert r.json() == {"error": "Unauthorized"}


def test_token_signed_with_other_secret_is_401():
    forged = jwt.encode(
        {"sub": "u-1", "email": "x@example.com", "role": "admin", "typ": "session", "iat": 1, "exp": 9999999999},
        "not-the-secret",
        algorithm="HS256",
    )
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {forged}"})
        assert r.status_code == 401


def test_magic_link_token_is_not_a_session():
    token = issue_magic_link_token(user_id="u-1", email="client@example.com")
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401


def test_expired_session_is_401():
    token = jwt.encode(
        {"sub": "u-1", "email": "x@example.com", "role": "user", "typ": "session", "iat": 1, "exp": 2},
        settings.SESSION_SECRET,
        algorithm="HS256",
    )
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401


def test_unknown_role_claim_downgrades_to_user():
    token = issue_session_token(user_id="u-1", email="client@example.com", role="superuser")
    with TestClient(_build_app()) as client:
        r = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        assert r.json()["role"] == "user"


def test_require_action_forbids_non_admin():
    with TestClient(_build_app()) as client:
        r = client.get("/admin-only", headers={"Authorization": f"Bearer {_session()}"})
        assert r.status_code == 403
        r = client.get("/admin-only", headers={"Authorization": f"Bearer {_session('admin')}"})
        assert r.status_code == 200
