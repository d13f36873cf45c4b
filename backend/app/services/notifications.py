"""
TenderDesk - Notifications and Activity Feed

Notifications are derived on every request from the current tenders; they
are never stored, so there is no read/unread state on the server.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.models.tender import TenderStatus, AssignmentStatus
from app.models.user import Role
from app.services.analytics import open_instruments
from app.services.assignments import needs_reassignment, tender_responses
from app.services.formatting import parse_datetime

ALERT_EXCLUDED_STATUSES = (TenderStatus.WON.value, TenderStatus.LOST.value, TenderStatus.DROPPED.value)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _notification(
    notification_id: str,
    message: str,
    kind: str,
    tender_id: str,
    timestamp: str,
    recipient_id: Optional[str],
) -> Dict[str, Any]:
    return {
        "id": notification_id,
        "message": message,
        "type": kind,
        "related_tender_id": tender_id,
        "timestamp": timestamp,
        "recipient_id": recipient_id,
        "is_read": False,
    }


def derive_system_alerts(
    tenders: Iterable[Dict[str, Any]],
    users: Iterable[Dict[str, Any]],
    now: Optional[datetime] = None,
    window_days: int = 15,
) -> List[Dict[str, Any]]:
    """
    Deadline and EMD/PBG expiry alerts due within `window_days`.

    The day difference is rounded up, so something due in 36 hours reads
    "due in 2 days". Every assignee and every admin gets their own copy.
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.isoformat()
    admin_ids = [u["id"] for u in users if u.get("role") == Role.ADMIN.value]
    alerts: List[Dict[str, Any]] = []

    def check(tender: Dict[str, Any], date_string: Optional[str], kind: str, prefix: str) -> None:
        target = parse_datetime(date_string)
        if target is None:
            return
        diff_days = math.ceil((target - now).total_seconds() / 86400)
        if not 0 <= diff_days <= window_days:
            return
        recipients = list(dict.fromkeys([*(tender.get("assigned_to") or []), *admin_ids]))
        for user_id in recipients:
            alerts.append(_notification(
                f"{tender['id']}-{kind}-{date_string}-{user_id}",
                f'{prefix} for "{tender.get("title")}" is due in {diff_days} days.',
                kind,
                tender["id"],
                stamp,
                user_id,
            ))

    for tender in tenders:
        if tender.get("status") not in ALERT_EXCLUDED_STATUSES:
            check(tender, tender.get("deadline"), "deadline", "Deadline")
        for label, instrument in open_instruments(tender):
            check(tender, instrument.get("expiry_date"), "expiry", label)
    return alerts


def derive_assignment_alerts(
    tenders: Iterable[Dict[str, Any]],
    users: Iterable[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Pending-response reminders for assignees, reassignment prompts for admins"""
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    admin_ids = [u["id"] for u in users if u.get("role") == Role.ADMIN.value]
    alerts: List[Dict[str, Any]] = []

    for tender in tenders:
        if tender.get("status") in ALERT_EXCLUDED_STATUSES:
            continue
        responses = tender_responses(tender)
        for user_id in tender.get("assigned_to") or []:
            status = (responses.get(user_id) or {}).get("status", AssignmentStatus.PENDING.value)
            if status == AssignmentStatus.PENDING.value:
                alerts.append(_notification(
                    f"{tender['id']}-assignment-{user_id}",
                    f'You have been assigned to "{tender.get("title")}". Please accept or decline.',
                    "assignment",
                    tender["id"],
                    stamp,
                    user_id,
                ))
        if needs_reassignment(tender):
            for admin_id in admin_ids:
                alerts.append(_notification(
                    f"{tender['id']}-reassignment-{admin_id}",
                    f'"{tender.get("title")}" was declined by its assignees and needs reassignment.',
                    "reassignment",
                    tender["id"],
                    stamp,
                    admin_id,
                ))
    return alerts


def notifications_for_user(notifications: Iterable[Dict[str, Any]], user_id: str) -> List[Dict[str, Any]]:
    """Broadcasts plus the user's own notifications, newest first"""
    mine = [n for n in notifications if not n.get("recipient_id") or n.get("recipient_id") == user_id]
    mine.sort(key=lambda n: parse_datetime(n.get("timestamp")) or _EPOCH, reverse=True)
    return mine


def system_activity_log(
    tenders: Iterable[Dict[str, Any]],
    clients: Iterable[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Tender and client history merged into one feed, newest first"""
    entries: List[Dict[str, Any]] = []
    for entity_type, prefix, items, name_key in (
        ("Tender", "tend-log", tenders, "title"),
        ("Client", "cli-log", clients, "name"),
    ):
        for item in items:
            for index, log in enumerate(item.get("history") or []):
                entries.append({
                    **log,
                    "id": f"{prefix}-{item['id']}-{index}",
                    "entity_type": entity_type,
                    "entity_name": item.get(name_key),
                    "entity_id": item["id"],
                })
    entries.sort(key=lambda e: parse_datetime(e.get("timestamp")) or _EPOCH, reverse=True)
    return entries
