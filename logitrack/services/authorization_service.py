"""
Request authorization predicates.

Every route evaluates `authorize(principal, action, resource)` before it
reads or mutates tenant-scoped data. The decision is pure: no I/O, no side
effects, and a deny is final for the request.

Ownership mismatches are reported as NOT_FOUND so a client can never learn
whether another tenant's resource exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from logitrack.core.errors import ApiError, Forbidden, NotFound, Unauthenticated
from logitrack.schemas.principal import Principal


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ActionPolicy:
    requires_admin: bool = False
    requires_ownership: bool = False


# Action keys used by routers. Unknown keys only require authentication.
ACTION_POLICIES: dict[str, ActionPolicy] = {
    "access_request.list": ActionPolicy(),
    "access_request.review": ActionPolicy(requires_admin=True),
    "shipment.list": ActionPolicy(),
    "shipment.create": ActionPolicy(),
    "shipment.read": ActionPolicy(requires_ownership=True),
    "shipment.update": ActionPolicy(requires_ownership=True),
    "timeline.read": ActionPolicy(requires_ownership=True),
    "timeline.create": ActionPolicy(requires_ownership=True),
    "document.list": ActionPolicy(),
    "document.create": ActionPolicy(requires_ownership=True),
    "document.read": ActionPolicy(requires_ownership=True),
    "document.delete": ActionPolicy(requires_ownership=True),
    "admin.shipments.list": ActionPolicy(requires_admin=True),
    "admin.shipments.create": ActionPolicy(requires_admin=True),
    "admin.shipments.import": ActionPolicy(requires_admin=True),
    "admin.shipments.export": ActionPolicy(requires_admin=True),
    "admin.users.list": ActionPolicy(requires_admin=True),
    "admin.users.update": ActionPolicy(requires_admin=True),
    "tms.sync": ActionPolicy(requires_admin=True),
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    message: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str | None = None) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)

    def to_error(self) -> ApiError | None:
        if self.allowed:
            return None
        if self.reason is DenyReason.UNAUTHENTICATED:
            return Unauthenticated(self.message or "Unauthorized")
        if self.reason is DenyReason.FORBIDDEN:
            return Forbidden(self.message or "Forbidden")
        return NotFound(self.message or "Not found")

    def raise_for_denial(self) -> None:
        error = self.to_error()
        if error is not None:
            raise error


def is_authenticated(principal: Principal | None) -> bool:
    return principal is not None and bool(principal.id)


def is_admin(principal: Principal | None) -> bool:
    return is_authenticated(principal) and principal.is_admin


def owns_resource(principal: Principal | None, resource_owner_id: str | None) -> bool:
    if not is_authenticated(principal) or not resource_owner_id:
        return False
    return str(resource_owner_id) == principal.id


def resource_owner_id(resource: Any) -> str | None:
    """Resolves the owning client id of a shipment, or of a document/event via its shipment."""
    if resource is None:
        return None
    if isinstance(resource, dict):
        owner = resource.get("client_id")
        return str(owner) if owner else None
    owner = getattr(resource, "client_id", None)
    if owner:
        return str(owner)
    parent = getattr(resource, "shipment", None)
    if parent is not None:
        return resource_owner_id(parent)
    return None


def authorize(
    principal: Principal | None,
    action: str,
    resource: Any = None,
    *,
    not_found_message: str = "Not found",
) -> Decision:
    policy = ACTION_POLICIES.get(action, ActionPolicy())

    if not is_authenticated(principal):
        return Decision.deny(DenyReason.UNAUTHENTICATED, "Unauthorized")

    if policy.requires_admin and not is_admin(principal):
        return Decision.deny(DenyReason.FORBIDDEN, "Forbidden")

    if policy.requires_ownership:
        if resource is None:
            return Decision.deny(DenyReason.NOT_FOUND, not_found_message)
        if not is_admin(principal) and not owns_resource(principal, resource_owner_id(resource)):
            return Decision.deny(DenyReason.NOT_FOUND, not_found_message)

    return Decision.allow()
