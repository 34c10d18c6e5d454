from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from logitrack.core.config import settings

SESSION_TOKEN_TYPE = "session"
MAGIC_LINK_TOKEN_TYPE = "magic_link"
_ALGORITHM = "HS256"


class SessionTokenError(Exception):
    pass


def _encode(claims: dict, *, ttl_seconds: int) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + timedelta(seconds=max(1, ttl_seconds))).timestamp())
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=_ALGORITHM)


def _decode(token: str, *, expected_type: str) -> dict:
    try:
        claims = jwt.decode(
            token,
            settings.SESSION_SECRET,
            algorithms=[_ALGORITHM],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise SessionTokenError("Session has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise SessionTokenError("Invalid session token.") from exc

    if claims.get("typ") != expected_type:
        raise SessionTokenError("Invalid session token.")
    return claims


def issue_session_token(*, user_id: str, email: str, role: str) -> str:
    return _encode(
        {
            "sub": user_id,
            "email": email,
            "role": role,
            "typ": SESSION_TOKEN_TYPE,
        },
        ttl_seconds=settings.SESSION_TTL_SECONDS,
    )


def decode_session_token(token: str) -> dict:
    return _decode(token, expected_type=SESSION_TOKEN_TYPE)


def issue_magic_link_token(*, user_id: str, email: str) -> str:
    return _encode(
        {"sub": user_id, "email": email, "typ": MAGIC_LINK_TOKEN_TYPE},
        ttl_seconds=settings.MAGIC_LINK_TTL_SECONDS,
    )


def decode_magic_link_token(token: str) -> dict:
    return _decode(token, expected_type=MAGIC_LINK_TOKEN_TYPE)
