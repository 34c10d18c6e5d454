from __future__ import annotations

from datetime import datetime

import pytest

from logitrack.core.errors import ValidationFailed
from logitrack.services.shipment_import_service import (
    build_import_rows,
    normalize_header,
    normalize_status,
    parse_csv,
    parse_date,
)


def test_parse_csv_handles_crlf_and_blank_lines():
    text = "tracking_number,origin,destination\r\nTRK-1,Rotterdam,Hamburg\r\n\r\n\nTRK-2,Lyon,Paris\n"
    assert parse_csv(text) == [
        ["tracking_number", "origin", "destination"],
        ["TRK-1", "Rotterdam", "Hamburg"],
        ["TRK-2", "Lyon", "Paris"],
    ]


def test_parse_csv_keeps_delimiters_and_newlines_inside_quotes():
    text = 'tracking_number,origin,destination\nTRK-1,"Antwerp, BE","Line one\nLine two"\n'
    rows = parse_csv(text)
    assert len(rows) == 2
    assert rows[1] == ["TRK-1", "Antwerp, BE", "Line one\nLine two"]


def test_parse_csv_accepts_semicolons_and_trims_cells():
    assert parse_csv(" a ; b ;c \n") == [["a", "b", "c"]]


def test_normalize_header_lowercases_and_joins_words():
    assert normalize_header(" Tracking Number ") == "tracking_number"
    assert normalize_header("Estimated\tDelivery") == "estimated_delivery"


@pytest.mark.parametrize(
    "raw,expected",
    [("in_transit", "in_transit"), ("delivered", "delivered"), ("shipped", "pending"), ("", "pending")],
)
def test_normalize_status_falls_back_to_pending(raw, expected):
    assert normalize_status(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["2025-02-15", "2025-02-15T00:00:00Z", "2025-02-15 08:30", datetime(2025, 2, 15, 8, 30)],
)
def test_parse_date_normalizes_to_iso_day(raw):
    assert parse_date(raw) == "2025-02-15"


def test_parse_date_handles_other_formats_and_garbage():
    assert parse_date("Feb 15, 2025") == "2025-02-15"
    assert parse_date("not a date") is None
    assert parse_date("   ") is None
    assert parse_date(None) is None


def test_build_import_rows_skips_rows_missing_required_fields():
    rows = parse_csv(
        "Tracking Number,Origin,Destination,Status,Estimated Delivery\n"
        "TRK-1,Rotterdam,Hamburg,in_transit,2025-02-15\n"
        ",Rotterdam,Hamburg,pending,\n"
        "TRK-3,Lyon,,pending,\n"
        "TRK-4,Lyon,Paris,lost,2025-02-15T00:00:00Z\n"
    )
    plan = build_import_rows(rows, "client-1")
    assert plan.skipped == 2
    assert [r["tracking_number"] for r in plan.rows] == ["TRK-1", "TRK-4"]
    assert plan.rows[0]["status"] == "in_transit"
    assert plan.rows[1]["status"] == "pending"
    assert plan.rows[1]["estimated_delivery"] == "2025-02-15"
    assert plan.rows[0]["actual_delivery"] is None
    assert all(r["client_id"] == "client-1" for r in plan.rows)


def test_build_import_rows_accepts_camel_case_headers():
    plan = build_import_rows([["trackingNumber", "origin", "destination"], ["TRK-1", "A", "B"]], "c")
    assert plan.rows[0]["tracking_number"] == "TRK-1"


def test_build_import_rows_requires_header_and_data():
    with pytest.raises(ValidationFailed) as exc:
        build_import_rows([["tracking_number", "origin", "destination"]], "c")
    assert exc.value.message == "CSV must have a header row and at least one data row"


def test_build_import_rows_requires_mandatory_columns():
    with pytest.raises(ValidationFailed) as exc:
        build_import_rows([["tracking_number", "origin"], ["TRK-1", "A"]], "c")
    assert "tracking_number, origin, destination" in exc.value.message
