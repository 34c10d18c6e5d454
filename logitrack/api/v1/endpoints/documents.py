import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import get_principal, require_action
from logitrack.api.deps.resources import load_document_for, load_shipment_for
from logitrack.core.errors import InternalError, NotFound, ValidationFailed
from logitrack.crud.documents import list_documents
from logitrack.db.session import get_db
from logitrack.schemas.document import DocumentOut
from logitrack.schemas.principal import Principal
from logitrack.services.document_service import DocumentService
from logitrack.services.document_storage import (
    DocumentStorageError,
    LocalDocumentStorage,
    get_document_storage,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def list_documents_api(
    shipment_id: str | None = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_action("document.list")),
):
    if shipment_id:
        load_shipment_for(db, principal, shipment_id, "shipment.read")
    rows = list_documents(
        db,
        client_id=None if principal.is_admin else principal.id,
        shipment_id=shipment_id,
    )
    return {"data": [DocumentOut.model_validate(d) for d in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_document_api(
    shipment_id: str | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    storage: LocalDocumentStorage = Depends(get_document_storage),
    principal: Principal = Depends(get_principal),
):
    if not shipment_id or file is None:
        raise ValidationFailed("shipment_id and file are required")
    shipment = load_shipment_for(db, principal, shipment_id, "document.create")
    payload = await file.read()
    document = DocumentService(db, storage).upload(
        shipment,
        filename=file.filename,
        content_type=file.content_type,
        payload=payload,
    )
    return {"data": DocumentOut.model_validate(document)}


@router.get("/{document_id}/download")
def download_document_api(
    document_id: str,
    db: Session = Depends(get_db),
    storage: LocalDocumentStorage = Depends(get_document_storage),
    principal: Principal = Depends(get_principal),
):
    document = load_document_for(db, principal, document_id, "document.read")
    try:
        path = storage.path_for(document.storage_key)
    except DocumentStorageError:
        logger.exception("document_path_invalid id=%s", document.id)
        raise InternalError("Failed to read file")
    if not path.is_file():
        logger.warning("document_file_missing id=%s key=%s", document.id, document.storage_key)
        raise NotFound("Document file not found")
    return FileResponse(path, media_type=document.file_type, filename=document.file_name)


@router.delete("/{document_id}")
def delete_document_api(
    document_id: str,
    db: Session = Depends(get_db),
    storage: LocalDocumentStorage = Depends(get_document_storage),
    principal: Principal = Depends(get_principal),
):
    document = load_document_for(db, principal, document_id, "document.delete")
    DocumentService(db, storage).delete(document)
    return {"data": {"id": document_id, "deleted": True}}
