import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import require_action
from logitrack.core.errors import ValidationFailed
from logitrack.crud.access_requests import create_access_request, list_access_requests
from logitrack.db.session import get_db
from logitrack.models.access_request import ACCESS_REQUEST_STATUSES
from logitrack.schemas.access_request import (
    AccessRequestCreate,
    AccessRequestOut,
    AccessRequestStatusUpdate,
)
from logitrack.schemas.principal import Principal
from logitrack.services.access_request_service import AccessRequestService
from logitrack.services.notification_service import MailProvider, get_mail_provider

router = APIRouter(prefix="/access-requests", tags=["access-requests"])
logger = logging.getLogger(__name__)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_access_request_api(payload: AccessRequestCreate, db: Session = Depends(get_db)):
    obj = create_access_request(db, payload)
    logger.info("access_request_created id=%s email=%s", obj.id, obj.email)
    return {"data": AccessRequestOut.model_validate(obj)}


@router.get("")
def list_access_requests_api(
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("access_request.list")),
):
    if status_filter and status_filter not in ACCESS_REQUEST_STATUSES:
        raise ValidationFailed("Invalid status. Must be pending, approved, or rejected")
    rows = list_access_requests(db, status=status_filter)
    return {"data": [AccessRequestOut.model_validate(r) for r in rows]}


@router.patch("/{request_id}")
def review_access_request_api(
    request_id: str,
    payload: AccessRequestStatusUpdate,
    db: Session = Depends(get_db),
    mail_provider: MailProvider | None = Depends(get_mail_provider),
    _: Principal = Depends(require_action("access_request.review")),
):
    obj = AccessRequestService(db, mail_provider=mail_provider).review(request_id, payload.status)
    return {"data": AccessRequestOut.model_validate(obj)}
