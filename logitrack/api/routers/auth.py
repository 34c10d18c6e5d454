import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import get_principal
from logitrack.core.config import settings
from logitrack.core.errors import Unauthenticated
from logitrack.db.session import get_db
from logitrack.models.users import User
from logitrack.schemas.principal import Principal
from logitrack.schemas.users import LoginRequest
from logitrack.services.identity_service import IdentityService, principal_for

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _start_session(response: Response, user: User) -> dict:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=IdentityService.issue_session(user),
        max_age=settings.SESSION_TTL_SECONDS,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    return {"data": principal_for(user)}


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = IdentityService(db).authenticate(str(payload.email), payload.password)
    if user is None:
        logger.info("login_failed email=%s", payload.email)
        raise Unauthenticated("Invalid email or password")
    logger.info("login_succeeded user_id=%s", user.id)
    return _start_session(response, user)


@router.get("/magic-link")
def redeem_magic_link(
    response: Response,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    user = IdentityService(db).redeem_magic_link(token)
    if user is None:
        raise Unauthenticated("Invalid or expired sign-in link")
    logger.info("magic_link_redeemed user_id=%s", user.id)
    return _start_session(response, user)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")
    return {"data": {"signed_out": True}}


@router.get("/me")
def me(principal: Principal = Depends(get_principal)):
    return {"data": principal}
