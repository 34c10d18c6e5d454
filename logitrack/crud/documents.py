from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from logitrack.models.document import Document
from logitrack.models.shipment import Shipment


def get_document(db: Session, document_id: str) -> Document | None:
    stmt = (
        select(Document)
        .options(joinedload(Document.shipment))
        .where(Document.id == document_id)
    )
    return db.execute(stmt).scalars().first()


def list_documents(
    db: Session,
    *,
    client_id: str | None = None,
    shipment_id: str | None = None,
) -> list[Document]:
    stmt = select(Document).join(Shipment, Shipment.id == Document.shipment_id)
    if client_id:
        stmt = stmt.where(Shipment.client_id == client_id)
    if shipment_id:
        stmt = stmt.where(Document.shipment_id == shipment_id)
    stmt = stmt.order_by(Document.uploaded_at.desc(), Document.file_name)
    return list(db.execute(stmt).scalars().all())


def create_document(db: Session, values: dict[str, Any]) -> Document:
    obj = Document(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_document(db: Session, document: Document) -> None:
    db.delete(document)
    db.commit()
