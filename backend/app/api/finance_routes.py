"""
TenderDesk - Financial Request Routes
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, Dict, Any

from app.core.database import get_db
from app.core.auth import get_current_user, require_roles
from app.models import FinancialRequest, FinancialRequestType, FinancialRequestStatus, Tender, User, Role
from app.api.serializers import _financial_to_dict, _tender_to_dict
from app.services.financials import allowed_transitions, build_request, transition_request

finance_router = APIRouter(prefix="/api/financials", tags=["Financials"])

require_requester = require_roles(Role.ADMIN, Role.SALES, Role.FINANCE)


class FinancialRequestCreate(BaseModel):
    tender_id: str
    type: FinancialRequestType
    amount: float
    notes: Optional[str] = None
    expiry_date: Optional[str] = None


class FinancialRequestUpdate(BaseModel):
    status: FinancialRequestStatus
    reason: Optional[str] = None
    instrument: Optional[Dict[str, Any]] = None


def _with_actions(request: FinancialRequest, user: User) -> dict:
    data = _financial_to_dict(request)
    data["allowed_transitions"] = allowed_transitions(request, user.role)
    return data


@finance_router.get("")
def list_requests(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Newest first, each with the statuses the caller may move it to"""
    requests = db.query(FinancialRequest).order_by(FinancialRequest.request_date.desc()).all()
    return [_with_actions(r, user) for r in requests]


@finance_router.post("", status_code=201)
def create_request(
    request: FinancialRequestCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_requester),
):
    tender = db.query(Tender).filter(Tender.id == request.tender_id).first()
    financial = build_request(
        tender, user, request.type.value, request.amount, request.notes, request.expiry_date,
    )
    db.add(financial)
    tender.version = (tender.version or 0) + 1
    db.commit()
    db.refresh(financial)
    return _with_actions(financial, user)


@finance_router.put("/{request_id}")
def update_request(
    request_id: str,
    request: FinancialRequestUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Move a request one lifecycle step; returns the request and its updated tender"""
    financial = db.query(FinancialRequest).filter(FinancialRequest.id == request_id).first()
    if not financial:
        raise HTTPException(status_code=404, detail="Financial request not found")

    tender = db.query(Tender).filter(Tender.id == financial.tender_id).first()
    transition_request(financial, tender, user, request.status.value, request.reason, request.instrument)
    if tender is not None:
        tender.version = (tender.version or 0) + 1
    db.commit()
    db.refresh(financial)
    if tender is not None:
        db.refresh(tender)

    return {
        "request": _with_actions(financial, user),
        "tender": _tender_to_dict(tender) if tender is not None else None,
    }
