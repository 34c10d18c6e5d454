from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TmsTimelineEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    shipment_id: Optional[str] = Field(default=None, alias="shipmentId")
    status: str
    timestamp: str
    location: Optional[str] = None
    notes: Optional[str] = None


class TmsShipment(BaseModel):
    """Shipment record as exposed by the external TMS API (camelCase)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    tracking_number: str = Field(alias="trackingNumber", min_length=1)
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    status: Optional[str] = None
    estimated_delivery: Optional[str] = Field(default=None, alias="estimatedDelivery")
    actual_delivery: Optional[str] = Field(default=None, alias="actualDelivery")
    client_email: Optional[str] = Field(default=None, alias="clientEmail")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    timeline: Optional[list[TmsTimelineEvent]] = None


class TmsTimelineUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tracking_number: str = Field(alias="trackingNumber", min_length=1)
    events: list[TmsTimelineEvent]


class TmsSyncRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: Optional[str] = Field(default=None, alias="clientId")
    updated_since: Optional[str] = Field(default=None, alias="updatedSince")


class TmsSyncResult(BaseModel):
    synced: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0


class TmsWebhookPayload(BaseModel):
    event: str = Field(min_length=1)
    data: dict[str, Any]


class TmsWebhookResult(BaseModel):
    event: str
    shipment_id: Optional[str] = None
    created: bool = False
    timeline_inserted: int = 0
