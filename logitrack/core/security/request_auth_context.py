from __future__ import annotations

from contextvars import ContextVar

from logitrack.schemas.principal import Principal


_current_principal: ContextVar[Principal | None] = ContextVar(
    "current_principal",
    default=None,
)


def set_current_principal(principal: Principal | None) -> None:
    _current_principal.set(principal)


def get_current_principal() -> Principal | None:
    return _current_principal.get()
