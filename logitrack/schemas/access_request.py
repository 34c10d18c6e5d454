from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from logitrack.models.access_request import ACCESS_REQUEST_STATUSES
from .base import BaseSchema


class AccessRequestCreate(BaseModel):
    email: EmailStr
    company_name: str = Field(min_length=1, max_length=255)
    message: Optional[str] = None

    @field_validator("company_name")
    @classmethod
    def strip_company_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Email and company name are required")
        return value

    @field_validator("message")
    @classmethod
    def blank_message_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class AccessRequestStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in ACCESS_REQUEST_STATUSES:
            raise ValueError("Invalid status. Must be pending, approved, or rejected")
        return value


class AccessRequestOut(BaseSchema):
    id: str
    email: str
    company_name: str
    message: Optional[str] = None
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
