import logging
from datetime import datetime
from io import BytesIO

import pandas as pd
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from logitrack.api.deps.request_identity import require_action
from logitrack.api.v1.endpoints.shipments import create_shipment_or_400
from logitrack.core.errors import ValidationFailed
from logitrack.crud.shipments import list_export_rows, list_shipments
from logitrack.crud.users import get_user
from logitrack.db.session import get_db
from logitrack.schemas.principal import Principal
from logitrack.schemas.shipment import AdminShipmentCreate, ShipmentImportResult, ShipmentOut
from logitrack.services.shipment_import_service import import_shipments

router = APIRouter()
logger = logging.getLogger(__name__)

EXPORT_SHEET = "Shipments"
EXPORT_COLUMNS = {
    "tracking_number": "Tracking Number",
    "client_email": "Client Email",
    "origin": "Origin",
    "destination": "Destination",
    "status": "Status",
    "estimated_delivery": "Estimated Delivery",
    "actual_delivery": "Actual Delivery",
    "created_at": "Created At",
}
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("")
def list_admin_shipments_api(
    client_id: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("admin.shipments.list")),
):
    rows = list_shipments(db, client_id=client_id, status=status_filter)
    return {"data": [ShipmentOut.model_validate(r) for r in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_admin_shipment_api(
    payload: AdminShipmentCreate,
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("admin.shipments.create")),
):
    if get_user(db, payload.client_id) is None:
        raise ValidationFailed("client_id does not match a known user")
    return {"data": create_shipment_or_400(db, payload.model_dump())}


@router.post("/import")
async def import_shipments_api(
    client_id: str | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("admin.shipments.import")),
):
    if file is None:
        raise ValidationFailed("CSV file is required")
    payload = await file.read()
    result = import_shipments(
        db,
        client_id=client_id or "",
        filename=file.filename,
        payload=payload,
    )
    return {"data": ShipmentImportResult(**result)}


def _cell_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@router.get("/export")
def export_shipments_api(
    client_id: str | None = Query(None),
    db: Session = Depends(get_db),
    _: Principal = Depends(require_action("admin.shipments.export")),
):
    rows = [
        {key: _cell_value(value) for key, value in row.items()}
        for row in list_export_rows(db, client_id=client_id)
    ]
    df = pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))
    df.rename(columns=EXPORT_COLUMNS, inplace=True)

    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=EXPORT_SHEET)
        worksheet = writer.sheets[EXPORT_SHEET]
        for idx, col in enumerate(df.columns):
            col_lengths = df[col].fillna("").astype(str).str.len()
            max_len = max(col_lengths.max() if not col_lengths.empty else 0, len(col)) + 2
            worksheet.column_dimensions[chr(65 + idx)].width = max_len
    output.seek(0)

    logger.info("shipments_exported rows=%s client_id=%s", len(rows), client_id or "*")
    filename = f"Shipments_{datetime.now().strftime('%Y%m%d_%H%M')}.xlsx"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return StreamingResponse(output, headers=headers, media_type=XLSX_MEDIA_TYPE)
