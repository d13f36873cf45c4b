"""
TenderDesk - Financial Request Model
EMD / PBG / fee requests raised against a tender
"""

import enum
import uuid
from sqlalchemy import Column, String, Text, DateTime, Float, JSON

from app.core.database import Base


class FinancialRequestType(str, enum.Enum):
    EMD_BG = "EMD BG"
    EMD_DD = "EMD DD"
    EMD_ONLINE = "EMD Online"
    PBG = "PBG"
    SD = "SD"
    TENDER_FEE = "Tender Fee"
    OTHER = "Other"

    @property
    def is_emd(self) -> bool:
        return self.value.startswith("EMD")


class FinancialRequestStatus(str, enum.Enum):
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    DECLINED = "Declined"
    PROCESSED = "Processed"
    REFUNDED = "Refunded"     # EMD / SD
    RELEASED = "Released"     # PBG
    FORFEITED = "Forfeited"
    EXPIRED = "Expired"


class EMDStatus(str, enum.Enum):
    PENDING = "Pending"
    REQUESTED = "Requested"
    UNDER_PROCESS = "Under Process"
    REFUNDED = "Refunded"
    FORFEITED = "Forfeited"
    EXPIRED = "Expired"


class PBGStatus(str, enum.Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    RELEASED = "Released"


INSTRUMENT_MODES = ("DD", "BG", "Online", "Cash", "N/A")


class FinancialRequest(Base):
    __tablename__ = "financial_requests"

    id = Column(String(64), primary_key=True, default=lambda: f"fin{uuid.uuid4().hex[:12]}")
    tender_id = Column(String(64), nullable=False, index=True)
    type = Column(String(30), nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String(30), nullable=False, default=FinancialRequestStatus.PENDING_APPROVAL.value)
    requested_by_id = Column(String(64), nullable=False)
    request_date = Column(DateTime(timezone=True), nullable=False)
    expiry_date = Column(String(40), nullable=True)
    notes = Column(Text, nullable=True)
    approver_id = Column(String(64), nullable=True)
    approval_date = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    # Populated only once Processed: {mode, processed_date, expiry_date, issuing_bank, document_url}
    instrument_details = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<FinancialRequest {self.id} {self.type} {self.status}>"
