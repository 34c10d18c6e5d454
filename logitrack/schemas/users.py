from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from logitrack.models.users import VALID_ROLES
from .base import BaseSchema


class UserOut(BaseSchema):
    id: str
    email: str
    role: str
    created_at: datetime | None = None
    last_sign_in_at: datetime | None = None


class UserRoleUpdate(BaseModel):
    role: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if value not in VALID_ROLES:
            raise ValueError(f"role must be one of: {', '.join(VALID_ROLES)}")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
