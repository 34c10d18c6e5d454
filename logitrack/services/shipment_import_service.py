"""
Bulk shipment import from uploaded CSV (or XLSX) files.

Parsing is storage-independent: `parse_csv` and `build_import_rows` only
turn text into normalized shipment dicts. `import_shipments` then inserts
every valid row under one client in a single batch.

Rows that miss a required field are skipped, not fatal. An import that ends
up with zero valid rows is rejected as a client error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from io import BytesIO
from typing import Any

import pandas as pd
from openpyxl import load_workbook
from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from logitrack.core.errors import ValidationFailed
from logitrack.core.flow_logging import flow_info
from logitrack.crud.users import get_user
from logitrack.models.shipment import SHIPMENT_PENDING, SHIPMENT_STATUSES, Shipment

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("tracking_number", "origin", "destination")
OPTIONAL_COLUMNS = ("status", "estimated_delivery", "actual_delivery")

# Canonical column -> accepted normalized header spellings.
_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "tracking_number": ("tracking_number", "trackingnumber"),
    "origin": ("origin",),
    "destination": ("destination",),
    "status": ("status",),
    "estimated_delivery": ("estimated_delivery", "estimateddelivery"),
    "actual_delivery": ("actual_delivery", "actualdelivery"),
}

_ISO_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_XLSX_SUFFIXES = (".xlsx", ".xlsm")

MISSING_COLUMNS_MESSAGE = (
    "CSV must include columns: tracking_number, origin, destination "
    "(status, estimated_delivery, actual_delivery are optional)"
)


@dataclass
class ImportPlan:
    rows: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0


def _split_records(text: str) -> list[str]:
    records: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)
    while i < length:
        c = text[i]
        if c == '"':
            in_quotes = not in_quotes
            current.append(c)
        elif c in "\r\n" and not in_quotes:
            record = "".join(current)
            if record.strip():
                records.append(record)
            current = []
            if c == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
        else:
            current.append(c)
        i += 1
    record = "".join(current)
    if record.strip():
        records.append(record)
    return records


def _split_cells(record: str) -> list[str]:
    cells: list[str] = []
    cell: list[str] = []
    in_quotes = False
    for c in record:
        if c == '"':
            in_quotes = not in_quotes
        elif c in ",;" and not in_quotes:
            cells.append("".join(cell).strip())
            cell = []
        else:
            cell.append(c)
    cells.append("".join(cell).strip())
    return cells


def parse_csv(raw_text: str) -> list[list[str]]:
    """
    Splits delimited text into rows of trimmed cells.

    Quoted sections may contain `,`, `;` and newlines. Both `,` and `;`
    separate cells. CRLF, CR and LF all end a record; blank records are
    dropped. Quote characters delimit sections and are not kept.
    """
    return [_split_cells(record) for record in _split_records(raw_text or "")]


def normalize_header(value: Any) -> str:
    return re.sub(r"\s+", "_", str(value or "").strip().lower())


def normalize_status(value: Any) -> str:
    text = str(value or "").strip()
    return text if text in SHIPMENT_STATUSES else SHIPMENT_PENDING


def parse_date(value: Any) -> str | None:
    """Normalizes a loosely formatted date to YYYY-MM-DD, or None."""
    if value is None:
        return None
    if hasattr(value, "date") and callable(value.date):
        return value.date().isoformat()
    if hasattr(value, "isoformat") and not isinstance(value, str):
        return value.isoformat()[:10]
    text = str(value).strip()
    if not text:
        return None
    match = _ISO_DATE_PREFIX.match(text)
    if match:
        return f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
    try:
        parsed = pd.to_datetime(text, errors="coerce", utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date().isoformat()


def _column_positions(header: list[str]) -> dict[str, int]:
    normalized = [normalize_header(cell) for cell in header]
    positions: dict[str, int] = {}
    for column, aliases in _COLUMN_ALIASES.items():
        for idx, name in enumerate(normalized):
            if name in aliases:
                positions[column] = idx
                break
    return positions


def _raw(row: list[Any], idx: int | None) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def _cell(row: list[Any], idx: int | None) -> str:
    value = _raw(row, idx)
    return "" if value is None else str(value).strip()


def build_import_rows(rows: list[list[Any]], client_id: str) -> ImportPlan:
    if len(rows) < 2:
        raise ValidationFailed("CSV must have a header row and at least one data row")

    positions = _column_positions([str(c or "") for c in rows[0]])
    if any(column not in positions for column in REQUIRED_COLUMNS):
        raise ValidationFailed(MISSING_COLUMNS_MESSAGE)

    plan = ImportPlan()
    for line_no, row in enumerate(rows[1:], start=2):
        tracking_number = _cell(row, positions["tracking_number"])
        origin = _cell(row, positions["origin"])
        destination = _cell(row, positions["destination"])
        if not tracking_number or not origin or not destination:
            plan.skipped += 1
            flow_info(logger, "import_row_skipped line=%s reason=missing_required", line_no, category="import")
            continue

        plan.rows.append(
            {
                "client_id": client_id,
                "tracking_number": tracking_number,
                "origin": origin,
                "destination": destination,
                "status": normalize_status(_cell(row, positions.get("status"))),
                "estimated_delivery": parse_date(_raw(row, positions.get("estimated_delivery"))),
                "actual_delivery": parse_date(_raw(row, positions.get("actual_delivery"))),
            }
        )
    return plan


def read_upload_rows(filename: str | None, payload: bytes) -> list[list[Any]]:
    name = (filename or "").strip().lower()
    if name.endswith(_XLSX_SUFFIXES):
        try:
            workbook = load_workbook(filename=BytesIO(payload), read_only=True, data_only=True)
        except Exception as exc:
            raise ValidationFailed("Uploaded workbook could not be read") from exc
        ws = workbook.worksheets[0]
        rows = [
            list(values)
            for values in ws.iter_rows(values_only=True)
            if any(v is not None and str(v).strip() for v in values)
        ]
        workbook.close()
        return rows

    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = payload.decode("latin-1")
    return parse_csv(text)


def _drop_duplicate_tracking_numbers(db: Session, plan: ImportPlan) -> None:
    seen: set[str] = set()
    unique_rows: list[dict[str, Any]] = []
    for row in plan.rows:
        if row["tracking_number"] in seen:
            plan.skipped += 1
            continue
        seen.add(row["tracking_number"])
        unique_rows.append(row)

    existing = set()
    if seen:
        existing = set(
            db.execute(
                select(Shipment.tracking_number).where(Shipment.tracking_number.in_(sorted(seen)))
            ).scalars()
        )
    if existing:
        logger.info("import_existing_tracking_numbers_skipped count=%s", len(existing))
    plan.rows = [row for row in unique_rows if row["tracking_number"] not in existing]
    plan.skipped += len(unique_rows) - len(plan.rows)


def _as_date_values(row: dict[str, Any]) -> dict[str, Any]:
    values = dict(row)
    for key in ("estimated_delivery", "actual_delivery"):
        if values.get(key):
            values[key] = date.fromisoformat(values[key])
    return values


def import_shipments(
    db: Session,
    *,
    client_id: str,
    filename: str | None,
    payload: bytes,
) -> dict[str, Any]:
    client_id = (client_id or "").strip()
    if not client_id:
        raise ValidationFailed("client_id is required")
    if not payload:
        raise ValidationFailed("CSV file is required")
    if get_user(db, client_id) is None:
        raise ValidationFailed("client_id does not match a known user")

    plan = build_import_rows(read_upload_rows(filename, payload), client_id)
    _drop_duplicate_tracking_numbers(db, plan)
    if not plan.rows:
        raise ValidationFailed("No valid rows to import (need tracking_number, origin, destination)")

    result = db.execute(
        insert(Shipment).returning(Shipment.id, Shipment.tracking_number),
        [_as_date_values(row) for row in plan.rows],
    )
    inserted = [{"id": r.id, "tracking_number": r.tracking_number} for r in result]
    db.commit()

    logger.info(
        "shipments_imported client_id=%s imported=%s skipped=%s",
        client_id,
        len(plan.rows),
        plan.skipped,
    )
    return {"imported": len(plan.rows), "skipped": plan.skipped, "rows": inserted}
