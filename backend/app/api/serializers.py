"""
TenderDesk - Response Serializers
ORM rows to the JSON wire shape (snake_case keys, ISO-8601 datetimes)
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List

from app.models import Tender, Client, User, FinancialRequest


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _columns_to_dict(row, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    skip = set(exclude)
    return {
        column.name: _iso(getattr(row, column.name))
        for column in row.__table__.columns
        if column.name not in skip
    }


def _tender_to_dict(tender: Tender) -> dict:
    """Convert Tender model to dict; JSON sub-documents default to empty containers"""
    data = _columns_to_dict(tender)
    for key in ("assigned_to", "emds", "pbgs", "documents", "history", "competitors"):
        data[key] = data.get(key) or []
    for key in ("assignment_responses", "checklists", "post_award_process"):
        data[key] = data.get(key) or {}
    return data


def _client_to_dict(client: Client) -> dict:
    data = _columns_to_dict(client)
    for key in ("contacts", "history", "interactions"):
        data[key] = data.get(key) or []
    return data


def _user_to_dict(user: User) -> dict:
    data = _columns_to_dict(user, exclude=("password_hash",))
    data["specializations"] = data.get("specializations") or []
    return data


def _financial_to_dict(request: FinancialRequest) -> dict:
    return _columns_to_dict(request)


def _row_to_dict(row) -> dict:
    """OEMs, products and admin lookups"""
    return _columns_to_dict(row)


def _rows(rows: Iterable, convert=_row_to_dict) -> List[dict]:
    return [convert(row) for row in rows]
