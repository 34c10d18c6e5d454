from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import require_action
from logitrack.core.errors import NotFound, ValidationFailed
from logitrack.crud.users import list_users
from logitrack.db.session import get_db
from logitrack.schemas.principal import Principal
from logitrack.schemas.users import UserOut, UserRoleUpdate
from logitrack.services.identity_service import IdentityService

router = APIRouter(prefix="/admin/users", tags=["admin"])


@router.get("")
def list_users_api(
    skip: int = Query(0, ge=0),
    limit: int = Query(500, ge=1, le=1000),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("admin.users.list")),
):
    return {"data": [UserOut.model_validate(u) for u in list_users(db, skip=skip, limit=limit)]}


@router.patch("/{user_id}")
def update_user_role_api(
    user_id: str,
    payload: UserRoleUpdate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("admin.users.update")),
):
    if payload.role is None:
        raise ValidationFailed("role is required")
    user = IdentityService(db).set_role(user_id, payload.role)
    if user is None:
        raise NotFound("User not found")
    return {"data": UserOut.model_validate(user)}
