from __future__ import annotations

import logging

from fastapi import Depends, Request

from logitrack.core.config import settings
from logitrack.core.errors import Unauthenticated
from logitrack.core.security.request_auth_context import set_current_principal
from logitrack.core.security.session_tokens import SessionTokenError, decode_session_token
from logitrack.models.users import ROLE_USER, VALID_ROLES
from logitrack.schemas.principal import Principal
from logitrack.services.authorization_service import authorize

logger = logging.getLogger(__name__)


def _extract_bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    prefix = "Bearer "
    if not header.startswith(prefix):
        return None
    token = header[len(prefix) :].strip()
    return token or None


def _extract_session_token(request: Request) -> str | None:
    cookie = (request.cookies.get(settings.SESSION_COOKIE_NAME) or "").strip()
    if cookie:
        return cookie
    return _extract_bearer_token(request)


def _principal_from_claims(claims: dict) -> Principal | None:
    subject = str(claims.get("sub") or "").strip()
    email = str(claims.get("email") or "").strip().lower()
    if not subject or not email:
        return None
    role = str(claims.get("role") or ROLE_USER).strip().lower()
    if role not in VALID_ROLES:
        logger.warning("session_unknown_role subject=%s role=%s", subject, role)
        role = ROLE_USER
    return Principal(id=subject, email=email, role=role)


def resolve_principal(request: Request) -> Principal | None:
    """Returns the caller's principal, or None for anonymous / invalid sessions."""
    token = _extract_session_token(request)
    if not token:
        set_current_principal(None)
        return None
    try:
        claims = decode_session_token(token)
    except SessionTokenError as exc:
        logger.info("session_rejected reason=%s", exc)
        set_current_principal(None)
        return None

    principal = _principal_from_claims(claims)
    set_current_principal(principal)
    return principal


async def get_optional_principal(request: Request) -> Principal | None:
    # Runs on the event loop so the principal context var is visible to sync handlers.
    return resolve_principal(request)


def get_principal(principal: Principal | None = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise Unauthenticated()
    return principal


def require_action(action: str):
    """Dependency factory for actions that need no resource (admin-only, list...)."""

    def _dependency(principal: Principal | None = Depends(get_optional_principal)) -> Principal:
        authorize(principal, action).raise_for_denial()
        return principal

    return _dependency

