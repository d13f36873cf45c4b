"""
TenderDesk - Assignment and Response Tracking
"""

from typing import Dict, Iterable, List, Optional
from loguru import logger

from app.core.exceptions import PermissionDeniedError, ValidationError
from app.models.tender import AssignmentStatus
from app.services.history import append_history, clone, utc_now_iso

RESPONSE_STATUSES = [s.value for s in AssignmentStatus]


def assignment_diff(old_ids: Iterable[str], new_ids: Iterable[str]):
    """(added, removed) user ids, each in the order given"""
    old_list, new_list = list(old_ids or []), list(new_ids or [])
    old_set, new_set = set(old_list), set(new_list)
    added = [uid for uid in new_list if uid not in old_set]
    removed = [uid for uid in old_list if uid not in new_set]
    return added, removed


def describe_diff(added: List[str], removed: List[str], names: Dict[str, str]) -> str:
    parts = []
    if added:
        parts.append("Added: " + ", ".join(names.get(uid, uid) for uid in added) + ".")
    if removed:
        parts.append("Removed: " + ", ".join(names.get(uid, uid) for uid in removed) + ".")
    return " ".join(parts)


def reassign(tender, actor, user_ids: List[str], user_names: Optional[Dict[str, str]] = None) -> bool:
    """
    Replace the tender's assignees.

    New assignees start Pending; responses of removed users are dropped.
    Returns False (and logs nothing) when the set is unchanged.
    """
    new_ids = list(dict.fromkeys(user_ids or []))
    added, removed = assignment_diff(tender.assigned_to or [], new_ids)
    if not added and not removed:
        return False

    responses = clone(tender.assignment_responses, {})
    for uid in removed:
        responses.pop(uid, None)
    for uid in added:
        responses[uid] = {"status": AssignmentStatus.PENDING.value}

    tender.assigned_to = new_ids
    tender.assignment_responses = responses
    append_history(tender, actor, "Updated Assignment", describe_diff(added, removed, user_names or {}))
    logger.info(f"Tender {tender.id}: +{len(added)} / -{len(removed)} assignees")
    return True


def respond_to_assignment(tender, user, status: str, notes: Optional[str] = None) -> dict:
    """Record the current user's accept/decline response"""
    if status not in RESPONSE_STATUSES:
        raise ValidationError(f"Unknown assignment status: {status!r}")
    if user.id not in (tender.assigned_to or []):
        raise PermissionDeniedError("You are not assigned to this tender")

    response = {"status": status, "notes": notes or "", "responded_at": utc_now_iso()}
    responses = clone(tender.assignment_responses, {})
    responses[user.id] = response
    tender.assignment_responses = responses

    append_history(tender, user, "Responded to Assignment", f"Set status to {status}.")
    return response


def response_status(tender, user_id: str) -> str:
    response = tender_responses(tender).get(user_id) or {}
    return response.get("status", AssignmentStatus.PENDING.value)


def tender_responses(tender) -> Dict[str, dict]:
    if isinstance(tender, dict):
        return tender.get("assignment_responses") or {}
    return tender.assignment_responses or {}


def needs_reassignment(tender) -> bool:
    """
    At least one Declined and no Accepted response.

    This is a heuristic: a tender with decliners and still-pending
    responses is flagged even though a pending assignee may yet accept.
    """
    statuses = [r.get("status") for r in tender_responses(tender).values()]
    return AssignmentStatus.DECLINED.value in statuses and AssignmentStatus.ACCEPTED.value not in statuses
