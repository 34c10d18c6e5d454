from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from logitrack.core.config import settings
from logitrack.core.errors import InternalError, ValidationFailed
from logitrack.crud import documents as documents_crud
from logitrack.models.document import Document
from logitrack.models.shipment import Shipment
from logitrack.services.document_storage import (
    DocumentStorageError,
    LocalDocumentStorage,
    build_storage_key,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def download_url(document_id: str) -> str:
    return f"{settings.PUBLIC_URL}/api/v1/documents/{document_id}/download"


class DocumentService:
    def __init__(self, db: Session, storage: LocalDocumentStorage):
        self.db = db
        self.storage = storage

    def upload(
        self,
        shipment: Shipment,
        *,
        filename: str | None,
        content_type: str | None,
        payload: bytes,
    ) -> Document:
        name = (filename or "").strip()
        if not name:
            raise ValidationFailed("file is required")
        if not payload:
            raise ValidationFailed("Uploaded file is empty")
        if len(payload) > settings.DOCUMENT_MAX_BYTES:
            raise ValidationFailed(f"File exceeds the maximum size of {settings.DOCUMENT_MAX_BYTES} bytes")

        document_id = str(uuid.uuid4())
        storage_key = build_storage_key(shipment.id, name)
        try:
            self.storage.save(storage_key, payload)
        except DocumentStorageError:
            logger.exception("document_store_failed shipment_id=%s key=%s", shipment.id, storage_key)
            raise InternalError("Failed to upload file")

        try:
            document = documents_crud.create_document(
                self.db,
                {
                    "id": document_id,
                    "shipment_id": shipment.id,
                    "file_name": name,
                    "file_url": download_url(document_id),
                    "file_type": (content_type or "").strip() or DEFAULT_CONTENT_TYPE,
                    "file_size": len(payload),
                    "storage_key": storage_key,
                },
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("document_metadata_failed shipment_id=%s key=%s", shipment.id, storage_key)
            self._discard(storage_key)
            raise InternalError("Failed to upload file") from exc
        logger.info(
            "document_uploaded id=%s shipment_id=%s size=%s",
            document.id,
            shipment.id,
            document.file_size,
        )
        return document

    def delete(self, document: Document) -> None:
        storage_key = document.storage_key
        documents_crud.delete_document(self.db, document)
        # Metadata is gone; an orphaned file is only reported.
        self._discard(storage_key)
        logger.info("document_deleted id=%s", document.id)

    def _discard(self, storage_key: str) -> None:
        try:
            self.storage.delete(storage_key)
        except DocumentStorageError:
            logger.exception("document_storage_delete_failed key=%s", storage_key)
