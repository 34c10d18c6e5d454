from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from logitrack.models.access_request import ACCESS_REQUEST_PENDING, AccessRequest
from logitrack.schemas.access_request import AccessRequestCreate


def create_access_request(db: Session, data: AccessRequestCreate) -> AccessRequest:
    obj = AccessRequest(
        email=str(data.email).strip().lower(),
        company_name=data.company_name,
        message=data.message,
        status=ACCESS_REQUEST_PENDING,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def get_access_request(db: Session, request_id: str) -> AccessRequest | None:
    return db.get(AccessRequest, request_id)


def list_access_requests(db: Session, *, status: str | None = None) -> list[AccessRequest]:
    stmt = select(AccessRequest).order_by(AccessRequest.created_at.desc(), AccessRequest.email)
    if status:
        stmt = stmt.where(AccessRequest.status == status)
    return list(db.execute(stmt).scalars().all())


def set_status(db: Session, obj: AccessRequest, status: str) -> AccessRequest:
    obj.status = status
    db.commit()
    db.refresh(obj)
    return obj
