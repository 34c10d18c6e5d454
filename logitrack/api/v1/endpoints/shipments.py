import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import get_principal, require_action
from logitrack.api.deps.resources import load_shipment_for
from logitrack.core.errors import ValidationFailed
from logitrack.crud.shipments import create_shipment, list_shipments, update_shipment
from logitrack.db.session import get_db
from logitrack.schemas.principal import Principal
from logitrack.schemas.shipment import ShipmentCreate, ShipmentOut, ShipmentUpdate

router = APIRouter()
logger = logging.getLogger(__name__)

DUPLICATE_TRACKING_MESSAGE = "A shipment with this tracking number already exists"


def create_shipment_or_400(db: Session, values: dict) -> ShipmentOut:
    try:
        obj = create_shipment(db, values)
    except IntegrityError:
        db.rollback()
        raise ValidationFailed(DUPLICATE_TRACKING_MESSAGE)
    logger.info("shipment_created id=%s client_id=%s", obj.id, obj.client_id)
    return ShipmentOut.model_validate(obj)


@router.get("")
def list_shipments_api(
    status_filter: str | None = Query(None, alias="status"),
    tracking_number: str | None = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_action("shipment.list")),
):
    rows = list_shipments(
        db,
        client_id=None if principal.is_admin else principal.id,
        status=status_filter,
        tracking_number=tracking_number,
    )
    return {"data": [ShipmentOut.model_validate(r) for r in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_shipment_api(
    payload: ShipmentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_action("shipment.create")),
):
    values = payload.model_dump()
    values["client_id"] = principal.id
    return {"data": create_shipment_or_400(db, values)}


@router.get("/{shipment_id}")
def get_shipment_api(
    shipment_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    shipment = load_shipment_for(db, principal, shipment_id, "shipment.read")
    return {"data": ShipmentOut.model_validate(shipment)}


@router.patch("/{shipment_id}")
def update_shipment_api(
    shipment_id: str,
    payload: ShipmentUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    shipment = load_shipment_for(db, principal, shipment_id, "shipment.update")
    patch = payload.model_dump(exclude_unset=True)
    for key in ("origin", "destination", "status"):
        if key in patch and patch[key] is None:
            patch.pop(key)
    if not patch:
        raise ValidationFailed("No fields to update")
    shipment = update_shipment(db, shipment, patch)
    logger.info("shipment_updated id=%s fields=%s", shipment.id, ",".join(sorted(patch)))
    return {"data": ShipmentOut.model_validate(shipment)}
