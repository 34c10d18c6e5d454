from __future__ import annotations

from typing import Any

from sqlalchemy import func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from logitrack.models.shipment import Shipment
from logitrack.models.users import User

_UPSERT_COLUMNS = (
    "client_id",
    "origin",
    "destination",
    "status",
    "estimated_delivery",
    "actual_delivery",
)


def get_shipment(db: Session, shipment_id: str) -> Shipment | None:
    return db.get(Shipment, shipment_id)


def get_shipment_by_tracking_number(db: Session, tracking_number: str) -> Shipment | None:
    stmt = select(Shipment).where(Shipment.tracking_number == tracking_number)
    return db.execute(stmt).scalars().first()


def list_shipments(
    db: Session,
    *,
    client_id: str | None = None,
    status: str | None = None,
    tracking_number: str | None = None,
) -> list[Shipment]:
    stmt = select(Shipment).order_by(Shipment.created_at.desc(), Shipment.tracking_number)
    if client_id:
        stmt = stmt.where(Shipment.client_id == client_id)
    if status:
        stmt = stmt.where(Shipment.status == status)
    if tracking_number:
        stmt = stmt.where(Shipment.tracking_number.ilike(f"%{tracking_number.strip()}%"))
    return list(db.execute(stmt).scalars().all())


def list_export_rows(db: Session, *, client_id: str | None = None) -> list[dict[str, Any]]:
    stmt = (
        select(
            Shipment.tracking_number,
            User.email.label("client_email"),
            Shipment.origin,
            Shipment.destination,
            Shipment.status,
            Shipment.estimated_delivery,
            Shipment.actual_delivery,
            Shipment.created_at,
        )
        .join(User, User.id == Shipment.client_id)
        .order_by(Shipment.created_at.desc(), Shipment.tracking_number)
    )
    if client_id:
        stmt = stmt.where(Shipment.client_id == client_id)
    return [dict(row._mapping) for row in db.execute(stmt)]


def create_shipment(db: Session, values: dict[str, Any]) -> Shipment:
    obj = Shipment(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_shipment(db: Session, shipment: Shipment, patch: dict[str, Any]) -> Shipment:
    for k, v in patch.items():
        setattr(shipment, k, v)
    db.commit()
    db.refresh(shipment)
    return shipment


def _dialect_insert(db: Session):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    return None


def upsert_shipment(db: Session, values: dict[str, Any]) -> tuple[str, bool]:
    """
    Inserts or updates the shipment keyed on `tracking_number`.
    Returns (shipment_id, created). Does not commit.
    """
    existing_id = db.execute(
        select(Shipment.id).where(Shipment.tracking_number == values["tracking_number"])
    ).scalar_one_or_none()

    dialect_insert = _dialect_insert(db)
    if dialect_insert is None:
        if existing_id is None:
            shipment_id = db.execute(insert(Shipment).values(**values).returning(Shipment.id)).scalar_one()
            return shipment_id, True
        shipment = db.get(Shipment, existing_id)
        for k in _UPSERT_COLUMNS:
            setattr(shipment, k, values.get(k))
        db.flush()
        return existing_id, False

    stmt = dialect_insert(Shipment).values(**values)
    update_set = {k: stmt.excluded[k] for k in _UPSERT_COLUMNS}
    update_set["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(
        index_elements=[Shipment.tracking_number],
        set_=update_set,
    ).returning(Shipment.id)
    shipment_id = db.execute(stmt).scalar_one()
    return shipment_id, existing_id is None
