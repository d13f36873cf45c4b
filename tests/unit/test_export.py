"""
Unit Tests for CSV Export
"""

import pytest

from app.core.exceptions import ValidationError
from app.services.export import flatten_tenders_for_export, to_csv

USERS = [{"id": "u1", "name": "Asha"}, {"id": "u2", "name": "Ravi"}]
CLIENTS = [{"id": "c1", "name": "Indian Railways"}]


def _tender(**overrides):
    tender = {
        "id": "t1",
        "title": "Laptops",
        "client_id": "c1",
        "client_name": "Old Name",
        "status": "Won",
        "workflow_stage": "Delivery",
        "deadline": "2025-04-30T10:30:00+00:00",
        "value": 1000,
        "cost": 800,
        "assigned_to": ["u1", "u2", "ghost"],
    }
    tender.update(overrides)
    return tender


def test_row_shape_and_defaults():
    row = flatten_tenders_for_export([_tender()], USERS, CLIENTS)[0]

    assert len(row) == 16
    assert row["Client"] == "Indian Railways"
    assert row["Deadline"] == "2025-04-30"
    assert row["Profit (INR)"] == 200
    assert row["Assigned To"] == "Asha, Ravi"
    assert row["Tender Number"] == "N/A"
    assert row["Source"] == "N/A"
    assert row["Reason for Loss"] == "N/A"


def test_profit_only_for_won_tenders():
    row = flatten_tenders_for_export([_tender(status="Lost", reason_for_loss="Price")], USERS, CLIENTS)[0]
    assert row["Profit (INR)"] == 0
    assert row["Reason for Loss"] == "Price"


def test_emd_amount_prefers_instrument():
    rows = flatten_tenders_for_export(
        [_tender(emd={"amount": 500}, emd_amount=100), _tender(emd_amount=100)], USERS, CLIENTS,
    )
    assert [r["EMD Amount"] for r in rows] == [500, 100]


def test_csv_quotes_only_when_needed():
    csv_text = to_csv([{"Title": 'Supply, "urgent"', "Value": 10}, {"Title": "Plain", "Value": None}])
    assert csv_text.split("\n") == [
        "Title,Value",
        '"Supply, ""urgent""",10',
        "Plain,",
    ]


def test_empty_export_is_rejected():
    with pytest.raises(ValidationError, match="No data available to export."):
        to_csv([])


def test_one_row_per_tender_and_no_profit_unless_won():
    tenders = [_tender(id=f"t{i}", status=s) for i, s in enumerate(["Won", "Lost", "Drafting", "Dropped"])]
    rows = flatten_tenders_for_export(tenders, USERS, CLIENTS)
    assert len(rows) == len(tenders)
    assert [r["Profit (INR)"] for r in rows] == [200, 0, 0, 0]
