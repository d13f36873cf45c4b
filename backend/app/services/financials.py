"""
TenderDesk - Financial Request Lifecycle

    Pending Approval -> Approved -> Processed -> Refunded | Released | Forfeited | Expired
    Pending Approval | Approved -> Declined (terminal, reason required)

Every status change goes through `transition_request`, which checks the
transition table below (including the acting role) before touching the
request or its tender. Processing a request records the instrument on the
tender; closing statuses update that instrument.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from loguru import logger

from app.core.exceptions import InvalidTransitionError, PermissionDeniedError, ValidationError
from app.models.financial import (
    FinancialRequest,
    FinancialRequestType,
    FinancialRequestStatus,
    EMDStatus,
    PBGStatus,
    INSTRUMENT_MODES,
)
from app.models.user import Role
from app.services.history import append_history, clone

FS = FinancialRequestStatus
FT = FinancialRequestType


def _any_type(request_type: str) -> bool:
    return True


def _is_emd(request_type: str) -> bool:
    return request_type.startswith("EMD")


def _is_pbg(request_type: str) -> bool:
    return request_type == FT.PBG.value


def _is_refundable(request_type: str) -> bool:
    return _is_emd(request_type) or request_type == FT.SD.value


def _is_emd_or_pbg(request_type: str) -> bool:
    return _is_emd(request_type) or _is_pbg(request_type)


@dataclass(frozen=True)
class Transition:
    source: FS
    target: FS
    role: Role
    applies_to: Callable[[str], bool] = _any_type


TRANSITIONS: Dict[Tuple[str, str], Transition] = {
    (t.source.value, t.target.value): t
    for t in [
        Transition(FS.PENDING_APPROVAL, FS.APPROVED, Role.ADMIN),
        Transition(FS.PENDING_APPROVAL, FS.DECLINED, Role.ADMIN),
        Transition(FS.APPROVED, FS.DECLINED, Role.ADMIN),
        Transition(FS.APPROVED, FS.PROCESSED, Role.FINANCE),
        Transition(FS.PROCESSED, FS.REFUNDED, Role.FINANCE, _is_refundable),
        Transition(FS.PROCESSED, FS.RELEASED, Role.FINANCE, _is_pbg),
        Transition(FS.PROCESSED, FS.FORFEITED, Role.FINANCE, _is_emd),
        Transition(FS.PROCESSED, FS.EXPIRED, Role.FINANCE, _is_emd_or_pbg),
    ]
}


def allowed_transitions(request: FinancialRequest, role: str) -> List[str]:
    """Target statuses `role` may move this request to"""
    return [
        t.target.value
        for (source, _), t in TRANSITIONS.items()
        if source == request.status and t.role.value == role and t.applies_to(request.type)
    ]


def build_request(
    tender,
    requester,
    request_type: str,
    amount: float,
    notes: Optional[str] = None,
    expiry_date: Optional[str] = None,
) -> FinancialRequest:
    """Validate and create a new request in Pending Approval"""
    if tender is None:
        raise ValidationError("Please select a tender")
    try:
        FT(request_type)
    except ValueError:
        raise ValidationError(f"Unknown financial request type: {request_type!r}")
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be a positive number")
    if _is_emd(request_type) and not expiry_date:
        raise ValidationError("Expiry date is required for EMD requests")

    request = FinancialRequest(
        tender_id=tender.id,
        type=request_type,
        amount=amount,
        notes=notes,
        expiry_date=expiry_date,
        requested_by_id=requester.id,
        request_date=datetime.now(timezone.utc),
        status=FS.PENDING_APPROVAL.value,
    )
    append_history(tender, requester, "Raised Financial Request", f"{request_type} for {amount:,.2f}")
    return request


def _validate_instrument(instrument: Optional[dict]) -> dict:
    if not instrument:
        raise ValidationError("Instrument details are required to process a request")
    mode = instrument.get("mode")
    if mode and mode not in INSTRUMENT_MODES:
        raise ValidationError(f"Unknown instrument mode: {mode!r}")
    return dict(instrument)


def _record_instrument(tender, request: FinancialRequest, instrument: dict) -> None:
    """Copy a processed instrument onto the tender"""
    record = {k: v for k, v in instrument.items() if k != "processed_date"}
    record["submitted_date"] = instrument.get("processed_date")
    record["amount"] = request.amount
    record["request_id"] = request.id

    if _is_emd(request.type):
        record["mode"] = request.type.replace("EMD ", "")  # 'EMD BG' -> 'BG'
        record["refund_status"] = EMDStatus.PENDING.value
        record.setdefault("expiry_date", request.expiry_date)
        tender.emds = clone(tender.emds, []) + [record]
    elif request.type == FT.PBG.value:
        record["status"] = PBGStatus.ACTIVE.value
        tender.pbgs = clone(tender.pbgs, []) + [record]
    elif request.type == FT.TENDER_FEE.value:
        record.pop("request_id")
        tender.tender_fee = record


def _update_instrument(tender, request: FinancialRequest, field: str, value: str, collection: str) -> None:
    items = clone(getattr(tender, collection), [])
    for item in items:
        if item.get("request_id") == request.id:
            item[field] = value
    setattr(tender, collection, items)


def transition_request(
    request: FinancialRequest,
    tender,
    actor,
    new_status: str,
    reason: Optional[str] = None,
    instrument: Optional[dict] = None,
) -> FinancialRequest:
    """Apply one lifecycle step, enforcing order, role and request type"""
    transition = TRANSITIONS.get((request.status, new_status))
    if transition is None:
        raise InvalidTransitionError(f"Cannot move a request from {request.status} to {new_status}")
    if actor.role != transition.role.value:
        raise PermissionDeniedError(
            f"Only {transition.role.value} users can mark a request {new_status}",
            f"user {actor.id} is {actor.role}",
        )
    if not transition.applies_to(request.type):
        raise InvalidTransitionError(f"A {request.type} request cannot be marked {new_status}")

    if new_status == FS.DECLINED.value:
        if not (reason or "").strip():
            raise ValidationError("A reason is required to decline a request")
        request.rejection_reason = reason.strip()
    elif new_status == FS.APPROVED.value:
        request.approver_id = actor.id
        request.approval_date = datetime.now(timezone.utc)
    elif new_status == FS.PROCESSED.value:
        request.instrument_details = _validate_instrument(instrument)

    old_status = request.status
    request.status = new_status

    if tender is not None:
        if new_status == FS.PROCESSED.value:
            _record_instrument(tender, request, request.instrument_details)
        elif new_status in (FS.REFUNDED.value, FS.FORFEITED.value) or (
            new_status == FS.EXPIRED.value and _is_emd(request.type)
        ):
            _update_instrument(tender, request, "refund_status", new_status, "emds")
        elif new_status in (FS.RELEASED.value, FS.EXPIRED.value):
            _update_instrument(tender, request, "status", new_status, "pbgs")

        append_history(
            tender, actor,
            f"Financial Request {new_status}",
            f"{request.type} request {request.id}: {old_status} -> {new_status}",
        )

    logger.info(f"Financial request {request.id} ({request.type}): {old_status} -> {new_status} by {actor.id}")
    return request
