from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timezone

from sqlalchemy.orm import Session

from logitrack.core.config import settings
from logitrack.core.security.passwords import generate_password, hash_password, verify_password
from logitrack.core.security.session_tokens import (
    SessionTokenError,
    decode_magic_link_token,
    issue_magic_link_token,
    issue_session_token,
)
from logitrack.crud import users as users_crud
from logitrack.crud.users import DuplicateError
from logitrack.models.users import ROLE_USER, User
from logitrack.schemas.principal import Principal

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    pass


@dataclass
class ProvisionedAccount:
    user: User
    password: str | None = None
    magic_link: str | None = None


def principal_for(user: User) -> Principal:
    return Principal(id=user.id, email=user.email, role=user.role or ROLE_USER)


def _signed_in_since(user: User, issued_at) -> bool:
    """A magic link is single-use: any sign-in at or after its issue time spends it."""
    last = user.last_sign_in_at
    if last is None or issued_at is None:
        return False
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return last.timestamp() >= int(issued_at)


class IdentityService:
    """
    Identity provider facade: accounts, credentials and session issuance.
    Routers never touch password hashes or tokens directly.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> User | None:
        return users_crud.get_user(self.db, user_id)

    def find_by_email(self, email: str) -> User | None:
        return users_crud.get_user_by_email(self.db, email)

    def email_index(self) -> dict[str, str]:
        """Snapshot of lower-cased email -> user id for every known account."""
        return {
            (email or "").strip().lower(): user_id
            for email, user_id in users_crud.list_email_ids(self.db)
            if email
        }

    def set_role(self, user_id: str, role: str) -> User | None:
        user = users_crud.update_user_role(self.db, user_id, role)
        if user is not None:
            logger.info("identity_role_updated user_id=%s role=%s", user_id, role)
        return user

    def provision_account(self, email: str, *, mode: str | None = None) -> ProvisionedAccount:
        mode = (mode or settings.ACCESS_APPROVAL_MODE or "magic_link").strip().lower()
        password = generate_password(settings.GENERATED_PASSWORD_LENGTH)
        try:
            user = users_crud.create_user(
                self.db,
                email=email,
                role=ROLE_USER,
                password_hash=hash_password(password),
            )
        except DuplicateError as exc:
            raise IdentityProviderError(f"An account already exists for {email}.") from exc

        logger.info("identity_account_created user_id=%s mode=%s", user.id, mode)
        if mode == "credentials":
            return ProvisionedAccount(user=user, password=password)
        return ProvisionedAccount(user=user, magic_link=self.build_magic_link(user))

    def delete_account(self, user_id: str) -> bool:
        deleted = users_crud.delete_user(self.db, user_id)
        if deleted:
            logger.info("identity_account_deleted user_id=%s", user_id)
        return deleted

    def build_magic_link(self, user: User) -> str:
        token = issue_magic_link_token(user_id=user.id, email=user.email)
        return f"{settings.PUBLIC_URL}/api/v1/auth/magic-link?token={token}"

    def authenticate(self, email: str, password: str) -> User | None:
        user = users_crud.get_user_by_email(self.db, email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return users_crud.touch_last_sign_in(self.db, user)

    def redeem_magic_link(self, token: str) -> User | None:
        try:
            claims = decode_magic_link_token(token)
        except SessionTokenError:
            return None
        user = users_crud.get_user(self.db, str(claims.get("sub")))
        if user is None or user.email != claims.get("email"):
            return None
        if _signed_in_since(user, claims.get("iat")):
            logger.warning("identity_magic_link_reused user_id=%s", user.id)
            return None
        return users_crud.touch_last_sign_in(self.db, user)

    @staticmethod
    def issue_session(user: User) -> str:
        return issue_session_token(user_id=user.id, email=user.email, role=user.role or ROLE_USER)
