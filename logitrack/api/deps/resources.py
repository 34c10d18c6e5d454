from __future__ import annotations

from sqlalchemy.orm import Session

from logitrack.crud.documents import get_document
from logitrack.crud.shipments import get_shipment
from logitrack.models.document import Document
from logitrack.models.shipment import Shipment
from logitrack.schemas.principal import Principal
from logitrack.services.authorization_service import authorize


def load_shipment_for(
    db: Session,
    principal: Principal | None,
    shipment_id: str,
    action: str,
) -> Shipment:
    """Loads a shipment the caller may act on; foreign shipments look missing."""
    shipment = get_shipment(db, shipment_id)
    authorize(principal, action, shipment, not_found_message="Shipment not found").raise_for_denial()
    return shipment


def load_document_for(
    db: Session,
    principal: Principal | None,
    document_id: str,
    action: str,
) -> Document:
    document = get_document(db, document_id)
    authorize(principal, action, document, not_found_message="Document not found").raise_for_denial()
    return document
