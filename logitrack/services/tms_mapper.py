from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

from logitrack.models.shipment import SHIPMENT_PENDING, SHIPMENT_STATUSES
from logitrack.schemas.tms import TmsShipment, TmsTimelineEvent
from logitrack.services.shipment_import_service import parse_date


def normalize_tms_status(status: str | None) -> str:
    normalized = re.sub(r"\s+", "_", (status or "").strip().lower())
    return normalized if normalized in SHIPMENT_STATUSES else SHIPMENT_PENDING


def parse_event_timestamp(value: Any) -> datetime:
    """Parses an ISO-8601 timestamp into naive UTC, the storage form of timeline rows."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise ValueError("timeline event timestamp is required")
        if text.endswith("Z") or text.endswith("z"):
            text = f"{text[:-1]}+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _as_date(value: str | None) -> date | None:
    normalized = parse_date(value)
    return date.fromisoformat(normalized) if normalized else None


def map_tms_shipment(remote: TmsShipment, client_id: str) -> dict[str, Any]:
    return {
        "client_id": client_id,
        "tracking_number": remote.tracking_number.strip(),
        "origin": remote.origin.strip(),
        "destination": remote.destination.strip(),
        "status": normalize_tms_status(remote.status),
        "estimated_delivery": _as_date(remote.estimated_delivery),
        "actual_delivery": _as_date(remote.actual_delivery),
    }


def map_tms_timeline_event(event: TmsTimelineEvent, shipment_id: str) -> dict[str, Any]:
    return {
        "shipment_id": shipment_id,
        "status": event.status.strip(),
        "timestamp": parse_event_timestamp(event.timestamp),
        "location": (event.location or "").strip() or None,
        "notes": (event.notes or "").strip() or None,
    }
