from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import get_principal
from logitrack.api.deps.resources import load_shipment_for
from logitrack.crud.timeline import create_event, list_timeline
from logitrack.db.session import get_db
from logitrack.schemas.principal import Principal
from logitrack.schemas.timeline import TimelineEventCreate, TimelineEventOut
from logitrack.services.tms_mapper import parse_event_timestamp

router = APIRouter()
logger = logging.getLogger(__name__)


def _event_timestamp(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    return parse_event_timestamp(value)


@router.get("/{shipment_id}/timeline")
def list_timeline_api(
    shipment_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    shipment = load_shipment_for(db, principal, shipment_id, "timeline.read")
    return {"data": [TimelineEventOut.model_validate(e) for e in list_timeline(db, shipment.id)]}


@router.post("/{shipment_id}/timeline", status_code=status.HTTP_201_CREATED)
def create_timeline_event_api(
    shipment_id: str,
    payload: TimelineEventCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    shipment = load_shipment_for(db, principal, shipment_id, "timeline.create")
    event = create_event(
        db,
        {
            "shipment_id": shipment.id,
            "status": payload.status.strip(),
            "timestamp": _event_timestamp(payload.timestamp),
            "location": (payload.location or "").strip() or None,
            "notes": (payload.notes or "").strip() or None,
        },
    )
    logger.info("timeline_event_created shipment_id=%s status=%s", shipment.id, event.status)
    return {"data": TimelineEventOut.model_validate(event)}
