from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from logitrack.models.shipment import SHIPMENT_PENDING, SHIPMENT_STATUSES
from .base import BaseSchema


def _validate_status(value: str | None) -> str | None:
    if value is None:
        return value
    if value not in SHIPMENT_STATUSES:
        raise ValueError(f"status must be one of: {', '.join(SHIPMENT_STATUSES)}")
    return value


class ShipmentCreate(BaseModel):
    tracking_number: str = Field(min_length=1, max_length=100)
    origin: str = Field(min_length=1, max_length=255)
    destination: str = Field(min_length=1, max_length=255)
    status: str = SHIPMENT_PENDING
    estimated_delivery: Optional[date] = None
    actual_delivery: Optional[date] = None

    @field_validator("tracking_number", "origin", "destination")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Tracking number, origin, and destination are required")
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        return _validate_status(value)


class AdminShipmentCreate(ShipmentCreate):
    client_id: str = Field(min_length=1, max_length=36)


class ShipmentUpdate(BaseModel):
    # all optional for PATCH-like updates
    origin: Optional[str] = Field(default=None, min_length=1, max_length=255)
    destination: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[str] = None
    estimated_delivery: Optional[date] = None
    actual_delivery: Optional[date] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        return _validate_status(value)


class ShipmentOut(BaseSchema):
    id: str
    client_id: str
    tracking_number: str
    origin: str
    destination: str
    status: str
    estimated_delivery: Optional[date] = None
    actual_delivery: Optional[date] = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ShipmentImportResult(BaseModel):
    imported: int
    skipped: int = 0
    rows: list[dict] = Field(default_factory=list)
