from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .base import BaseSchema


class TimelineEventCreate(BaseModel):
    status: str = Field(min_length=1, max_length=100)
    location: Optional[str] = None
    notes: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def strip_status(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("status is required")
        return value


class TimelineEventOut(BaseSchema):
    id: str
    shipment_id: str
    status: str
    timestamp: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
