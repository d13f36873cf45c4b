"""
TenderDesk - CSV Export
"""

from typing import Any, Dict, Iterable, List

from app.core.exceptions import ValidationError
from app.models.tender import TenderStatus
from app.services.formatting import parse_datetime


def _amount(instrument) -> float:
    return (instrument or {}).get("amount") or 0


def flatten_tenders_for_export(
    tenders: Iterable[Dict[str, Any]],
    users: Iterable[Dict[str, Any]],
    clients: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """One flat row per tender, with names resolved and profit computed for won tenders"""
    user_names = {u["id"]: u.get("name") for u in users}
    client_names = {c["id"]: c.get("name") for c in clients}

    rows = []
    for tender in tenders:
        value = tender.get("value") or 0
        cost = tender.get("cost") or 0
        deadline = parse_datetime(tender.get("deadline"))
        rows.append({
            "Tender ID": tender.get("id"),
            "Tender Number": tender.get("tender_number") or "N/A",
            "Title": tender.get("title"),
            "Client": client_names.get(tender.get("client_id")) or tender.get("client_name"),
            "Status": tender.get("status"),
            "Workflow Stage": tender.get("workflow_stage"),
            # YYYY-MM-DD sorts correctly in spreadsheets
            "Deadline": deadline.strftime("%Y-%m-%d") if deadline else "",
            "Value (INR)": value,
            "Cost (INR)": cost,
            "Profit (INR)": value - cost if tender.get("status") == TenderStatus.WON.value else 0,
            "Assigned To": ", ".join(
                user_names[uid] for uid in tender.get("assigned_to") or [] if user_names.get(uid)
            ),
            "Source": tender.get("source") or "N/A",
            "EMD Amount": _amount(tender.get("emd")) or tender.get("emd_amount") or 0,
            "PBG Amount": _amount(tender.get("pbg")),
            "Reason for Loss": tender.get("reason_for_loss") or "N/A",
            "Loss Notes": tender.get("reason_for_loss_notes") or "N/A",
        })
    return rows


def _csv_value(value: Any) -> str:
    text = "" if value is None else str(value)
    if "," in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Render rows as CSV. The header comes from the first row's keys.

    Values are quoted only when they contain a comma, a quote or a newline,
    so plain exports stay byte-identical to what spreadsheet users expect.
    """
    if not rows:
        raise ValidationError("No data available to export.")

    headers = list(rows[0].keys())
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(_csv_value(row.get(header)) for header in headers))
    return "\n".join(lines)
