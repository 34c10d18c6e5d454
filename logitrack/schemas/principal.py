from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from logitrack.models.users import ROLE_ADMIN, ROLE_USER


class Principal(BaseModel):
    """The authenticated caller, rebuilt from the session token per request."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
