from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logitrack.models.users import ROLE_USER, User


class DuplicateError(Exception):
    """Raised when a unique constraint is violated (e.g., email unique)."""


def _normalized_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(
    db: Session,
    *,
    email: str,
    role: str = ROLE_USER,
    password_hash: str | None = None,
) -> User:
    obj = User(email=_normalized_email(email), role=role, password_hash=password_hash)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("User already exists (unique constraint hit).") from e
    db.refresh(obj)
    return obj


def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == _normalized_email(email))
    return db.execute(stmt).scalar_one_or_none()


def list_users(db: Session, skip: int = 0, limit: int = 500) -> list[User]:
    stmt = select(User).order_by(User.created_at.desc(), User.email).offset(skip).limit(limit)
    return list(db.execute(stmt).scalars().all())


def list_email_ids(db: Session) -> list[tuple[str, str]]:
    stmt = select(User.email, User.id)
    return [(email, user_id) for email, user_id in db.execute(stmt).all()]


def update_user_role(db: Session, user_id: str, role: str) -> User | None:
    obj = db.get(User, user_id)
    if not obj:
        return None
    obj.role = role
    db.commit()
    db.refresh(obj)
    return obj


def touch_last_sign_in(db: Session, user: User) -> User:
    user.last_sign_in_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: str) -> bool:
    obj = db.get(User, user_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    return True
