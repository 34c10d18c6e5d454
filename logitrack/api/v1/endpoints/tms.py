import hmac
import logging

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import require_action
from logitrack.core.config import settings
from logitrack.core.errors import ServiceUnavailable, Unauthenticated
from logitrack.db.session import get_db
from logitrack.schemas.principal import Principal
from logitrack.schemas.tms import TmsSyncRequest, TmsWebhookPayload
from logitrack.services.tms_client import TmsApiError, TmsClient, get_tms_client
from logitrack.services.tms_reconciliation_service import TmsReconciliationService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sync")
def sync_tms_api(
    payload: TmsSyncRequest | None = None,
    db: Session = Depends(get_db),
    client: TmsClient | None = Depends(get_tms_client),
    _: Principal = Depends(require_action("tms.sync")),
):
    if client is None:
        raise ServiceUnavailable("TMS integration is not configured")
    payload = payload or TmsSyncRequest()
    try:
        result = TmsReconciliationService(db).sync_from_tms(
            client,
            client_id=payload.client_id,
            updated_since=payload.updated_since,
        )
    except TmsApiError:
        logger.exception("tms_sync_failed client_id=%s", payload.client_id)
        raise ServiceUnavailable("Failed to sync with TMS")
    return {"data": result}


def verify_webhook_signature(signature: str | None = Header(None, alias="x-tms-signature")) -> None:
    secret = settings.TMS_WEBHOOK_SECRET
    if not secret:
        raise ServiceUnavailable("TMS webhook is not configured")
    if not signature or not hmac.compare_digest(signature.encode(), secret.encode()):
        logger.warning("tms_webhook_rejected reason=invalid_signature")
        raise Unauthenticated("Invalid signature")


@router.post("/webhook", dependencies=[Depends(verify_webhook_signature)])
def tms_webhook_api(payload: TmsWebhookPayload, db: Session = Depends(get_db)):
    result = TmsReconciliationService(db).apply_webhook(payload.event, payload.data)
    return {"data": result}
