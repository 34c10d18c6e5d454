from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from logitrack.models.shipment import ShipmentTimeline


def list_timeline(db: Session, shipment_id: str) -> list[ShipmentTimeline]:
    stmt = (
        select(ShipmentTimeline)
        .where(ShipmentTimeline.shipment_id == shipment_id)
        .order_by(ShipmentTimeline.timestamp.asc(), ShipmentTimeline.id)
    )
    return list(db.execute(stmt).scalars().all())


def create_event(db: Session, values: dict[str, Any]) -> ShipmentTimeline:
    obj = ShipmentTimeline(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def event_exists(db: Session, *, shipment_id: str, status: str, timestamp: datetime) -> bool:
    stmt = (
        select(ShipmentTimeline.id)
        .where(ShipmentTimeline.shipment_id == shipment_id)
        .where(ShipmentTimeline.status == status)
        .where(ShipmentTimeline.timestamp == timestamp)
        .limit(1)
    )
    return db.execute(stmt).first() is not None


def bulk_insert_events(db: Session, rows: list[dict[str, Any]]) -> int:
    """Inserts rows without dedup. Does not commit."""
    if not rows:
        return 0
    db.execute(insert(ShipmentTimeline), rows)
    return len(rows)
