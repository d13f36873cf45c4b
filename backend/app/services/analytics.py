"""
TenderDesk - Analytics

Pure functions over serialized tenders (the dicts returned by the API).
Nothing here touches the database.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.core.exceptions import ValidationError
from app.models.financial import EMDStatus, PBGStatus
from app.models.tender import BidWorkflowStage, TenderStatus, FINAL_STATUSES
from app.models.user import Role
from app.services.formatting import parse_datetime, format_large_indian_number
from app.services.workflow import STAGE_ORDER, stage_index

WON = TenderStatus.WON.value
LOST = TenderStatus.LOST.value

DEADLINE_WINDOWS = {"48h": 2, "7d": 7, "15d": 15}

CLOSED_EMD_STATUSES = (EMDStatus.REFUNDED.value, EMDStatus.FORFEITED.value, EMDStatus.EXPIRED.value)
CLOSED_PBG_STATUSES = (PBGStatus.RELEASED.value, PBGStatus.EXPIRED.value)


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _is_decided(tender: Dict[str, Any]) -> bool:
    return tender.get("status") in (WON, LOST)


# =========================================================================
# FUNNEL / WIN-LOSS
# =========================================================================

def calculate_tender_funnel(tenders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Cumulative funnel: a tender at stage i counts toward every stage <= i.

    Tenders whose stage is not a known workflow stage are ignored, so counts
    never increase along the stage order.
    """
    counts = [0] * len(STAGE_ORDER)
    for tender in tenders:
        idx = stage_index(tender.get("workflow_stage"))
        if idx == -1:
            continue
        for i in range(idx + 1):
            counts[i] += 1
    return [{"name": stage, "count": count} for stage, count in zip(STAGE_ORDER, counts)]


def calculate_win_loss_by_source(tenders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    results: Dict[str, Dict[str, int]] = {}
    for tender in tenders:
        source = tender.get("source")
        if not source or not _is_decided(tender):
            continue
        bucket = results.setdefault(source, {"won": 0, "lost": 0})
        bucket["won" if tender["status"] == WON else "lost"] += 1

    rows = [{"name": name, **data} for name, data in results.items()]
    rows.sort(key=lambda r: r["won"] + r["lost"], reverse=True)
    return rows


def calculate_sales_leaderboard(
    tenders: Iterable[Dict[str, Any]],
    users: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    sales_users = [u for u in users if u.get("role") == Role.SALES.value]
    stats = {u["id"]: {"value_won": 0.0, "won": 0, "lost": 0} for u in sales_users}

    for tender in tenders:
        if not _is_decided(tender):
            continue
        for user_id in tender.get("assigned_to") or []:
            if user_id not in stats:
                continue
            if tender["status"] == WON:
                stats[user_id]["won"] += 1
                stats[user_id]["value_won"] += tender.get("value") or 0
            else:
                stats[user_id]["lost"] += 1

    board = []
    for user in sales_users:
        data = stats[user["id"]]
        total = data["won"] + data["lost"]
        board.append({
            "user_id": user["id"],
            "user_name": user.get("name"),
            "avatar_url": user.get("avatar_url"),
            "value_won": data["value_won"],
            "tenders_won": data["won"],
            "win_rate": (data["won"] / total) * 100 if total else 0,
        })
    board.sort(key=lambda r: r["value_won"], reverse=True)
    return board


def calculate_client_health(client: Dict[str, Any], client_tenders: Iterable[Dict[str, Any]]) -> str:
    """Excellent (>= 75% win rate), Good (>= 40%, or no decided tenders yet), else At-Risk"""
    statuses = [t.get("status") for t in client_tenders]
    won, lost = statuses.count(WON), statuses.count(LOST)
    completed = won + lost
    if completed == 0:
        return "Good"

    win_rate = (won / completed) * 100
    if win_rate >= 75:
        return "Excellent"
    if win_rate >= 40:
        return "Good"
    return "At-Risk"


def _month_key(dt: datetime) -> str:
    return dt.strftime("%b %y")


def _decision_date(tender: Dict[str, Any]) -> Optional[datetime]:
    """Timestamp of the latest status change to Won/Lost, else the deadline"""
    for entry in reversed(tender.get("history") or []):
        details = entry.get("details") or ""
        if "Changed Tender Status" in (entry.get("action") or "") and (WON in details or LOST in details):
            return parse_datetime(entry.get("timestamp"))
    return parse_datetime(tender.get("deadline"))


def get_win_loss_value_by_month(
    tenders: Iterable[Dict[str, Any]],
    months: int = 6,
    today: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    today = _now(today)
    results: Dict[str, Dict[str, float]] = {}
    for i in range(months - 1, -1, -1):
        year, month = today.year, today.month - i
        while month <= 0:
            month += 12
            year -= 1
        results[_month_key(datetime(year, month, 1))] = {"won_value": 0.0, "lost_value": 0.0}

    for tender in tenders:
        if not _is_decided(tender):
            continue
        decided_at = _decision_date(tender)
        if decided_at is None:
            continue
        bucket = results.get(_month_key(decided_at))
        if bucket is None:
            continue
        bucket["won_value" if tender["status"] == WON else "lost_value"] += tender.get("value") or 0

    return [{"name": name, **values} for name, values in results.items()]


def get_win_rate_by_category(tenders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    categories: Dict[str, Dict[str, int]] = {}
    for tender in tenders:
        if not _is_decided(tender):
            continue
        bucket = categories.setdefault(tender.get("item_category") or "Uncategorized", {"won": 0, "total": 0})
        if tender["status"] == WON:
            bucket["won"] += 1
        bucket["total"] += 1

    rows = [
        {"name": name, "win_rate": (data["won"] / data["total"]) * 100 if data["total"] else 0}
        for name, data in categories.items()
    ]
    rows.sort(key=lambda r: r["win_rate"], reverse=True)
    return rows


# =========================================================================
# DASHBOARD
# =========================================================================

def is_upcoming(date_value, days: float, now: Optional[datetime] = None) -> bool:
    """True when `date_value` lies between now and `days` days from now"""
    target = parse_datetime(date_value)
    if target is None:
        return False
    diff_days = (target - _now(now)).total_seconds() / 86400
    return 0 <= diff_days <= days


def filter_by_deadline(
    tenders: Iterable[Dict[str, Any]],
    window: str,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Open tenders whose deadline falls inside a '48h' / '7d' / '15d' window"""
    if window not in DEADLINE_WINDOWS:
        raise ValidationError(f"Unknown deadline window: {window!r}")
    days = DEADLINE_WINDOWS[window]
    return [
        t for t in tenders
        if t.get("status") not in FINAL_STATUSES and is_upcoming(t.get("deadline"), days, now)
    ]


def open_instruments(tender: Dict[str, Any]):
    """Yield (label, instrument) for EMD/PBG instruments that are still live"""
    if tender.get("emd"):
        yield "EMD", tender["emd"]
    if tender.get("pbg"):
        yield "PBG", tender["pbg"]
    for emd in tender.get("emds") or []:
        if emd.get("refund_status") not in CLOSED_EMD_STATUSES:
            yield "EMD", emd
    for pbg in tender.get("pbgs") or []:
        if pbg.get("status") not in CLOSED_PBG_STATUSES:
            yield "PBG", pbg


def dashboard_stats(
    tenders: List[Dict[str, Any]],
    current_user_id: Optional[str] = None,
    now: Optional[datetime] = None,
    expiry_window_days: int = 30,
) -> Dict[str, Any]:
    now = _now(now)
    open_tenders = [t for t in tenders if t.get("status") not in FINAL_STATUSES]

    def open_at(stage: BidWorkflowStage) -> int:
        return sum(1 for t in open_tenders if t.get("workflow_stage") == stage.value)

    awarded = [t for t in tenders if t.get("status") == WON]
    awarded_value = sum(t.get("value") or 0 for t in awarded)

    my_assignments = sorted(
        (t for t in open_tenders if current_user_id and current_user_id in (t.get("assigned_to") or [])),
        key=lambda t: parse_datetime(t.get("deadline")) or datetime.max.replace(tzinfo=timezone.utc),
    )[:5]

    expiring = []
    for tender in tenders:
        for label, instrument in open_instruments(tender):
            if is_upcoming(instrument.get("expiry_date"), expiry_window_days, now):
                expiring.append({
                    "tender_id": tender.get("id"),
                    "title": tender.get("title"),
                    "type": label,
                    "amount": instrument.get("amount"),
                    "expiry_date": instrument.get("expiry_date"),
                })

    return {
        "bidding_in_process": sum(
            1 for t in open_tenders
            if t.get("workflow_stage") in (BidWorkflowStage.PREPARATION.value, BidWorkflowStage.SUBMISSION.value)
        ),
        "deadlines": {
            window: len(filter_by_deadline(tenders, window, now)) for window in DEADLINE_WINDOWS
        },
        "awarded_count": len(awarded),
        "awarded_value": awarded_value,
        "awarded_value_display": format_large_indian_number(awarded_value),
        "lifecycle": {
            "submitted": open_at(BidWorkflowStage.SUBMISSION),
            "technical_evaluation": open_at(BidWorkflowStage.UNDER_TECHNICAL_EVALUATION),
            "financial_evaluation": open_at(BidWorkflowStage.UNDER_FINANCIAL_EVALUATION),
            "lost": sum(1 for t in tenders if t.get("status") == LOST),
        },
        "my_assignments": [
            {"id": t.get("id"), "title": t.get("title"), "deadline": t.get("deadline")}
            for t in my_assignments
        ],
        "status_counts": dict(Counter(t.get("status") for t in tenders)),
        "expiring_instruments": expiring,
    }
