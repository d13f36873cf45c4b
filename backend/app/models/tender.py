"""
TenderDesk - Tender Model
A tender (government/enterprise bid) and the enumerations that describe
its two independent lifecycles: the bid workflow and the post-award process.
"""

import enum
import uuid
from sqlalchemy import Column, String, Text, DateTime, Float, Integer, Boolean, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class TenderStatus(str, enum.Enum):
    DRAFTING = "Drafting"
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    WON = "Won"
    LOST = "Lost"
    ARCHIVED = "Archived"
    DROPPED = "Dropped"


class BidWorkflowStage(str, enum.Enum):
    """Bid workflow stages, declared in workflow order"""
    IDENTIFICATION = "Tender Identification"
    REVIEW = "Tender Review and Shortlisting"
    PREPARATION = "Bid Preparation"
    PRE_BID_MEETING = "Pre-Bid Meeting"
    SUBMISSION = "Bid Submission"
    UNDER_TECHNICAL_EVALUATION = "Under Technical Evaluation"
    UNDER_FINANCIAL_EVALUATION = "Under Financial Evaluation"
    FOLLOW_UP = "Follow-Up and Clarifications"
    NEGOTIATION = "Negotiation and Counter Offer"
    LOI_PO = "Letter of Intent (LOI) / Purchase Order (PO)"
    DELIVERY_PLANNING = "Project Delivery Planning"
    DELIVERY = "Delivery"
    INSTALLATION = "Proof of Testing (POT) / Installation"
    PAYMENT = "Payment Collection"
    WARRANTY = "Warranty Support"
    COMPLETE = "Complete"


class PostAwardStage(str, enum.Enum):
    """Post-award process stages for won tenders, declared in order"""
    ORDER_ACKNOWLEDGEMENT = "LOI/PO Acknowledgement"
    PBG_SUBMISSION = "PBG Submission"
    CONTRACT_SIGNING = "Contract Signing"
    KICKOFF = "Kick-off Meeting"
    DELIVERY = "Delivery & Installation"
    ACCEPTANCE = "Final Acceptance & Sign-off"
    INVOICING = "Invoicing & Payment"
    PBG_RELEASE = "PBG Release"
    WARRANTY = "Warranty & Support"
    PROJECT_CLOSURE = "Project Closure"


class ProcessStageStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    SKIPPED = "Skipped"


class AssignmentStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"


class ReasonForLoss(str, enum.Enum):
    PRICE = "Price"
    TECHNICAL = "Technical"
    TIMELINE = "Timeline"
    RELATIONSHIP = "Relationship"
    OTHER = "Other"


class TenderDocumentType(str, enum.Enum):
    TENDER_NOTICE = "Tender Notice"
    CORRIGENDUM = "Corrigendum"
    TECHNICAL_BID = "Technical Bid"
    COMMERCIAL_BID = "Commercial Bid"
    PURCHASE_ORDER = "Purchase Order"
    CONTRACT = "Contract"
    DELIVERY_SCHEDULE = "Delivery Schedule"
    WARRANTY_CERTIFICATE = "OEM Warranty Certificate"
    INSTALLATION_CERTIFICATE = "Installation Certificate"
    INVOICE = "Invoice"
    CLIENT_SATISFACTORY_REPORT = "Client Satisfactory Report"
    FINANCIAL_REQUEST_ATTACHMENT = "Financial Request Attachment"
    PRODUCT_BROCHURE = "Product Brochure"
    AUTHORIZATION_CERTIFICATE = "Authorization Certificate"
    TECHNICAL_COMPLIANCE = "Technical Compliance"
    CASE_STUDY = "Case Study"
    LETTER_OF_ACCEPTANCE = "Letter of Acceptance"
    PBG_DOCUMENT = "PBG Document"
    EMD_REFUND_LETTER = "EMD Refund Letter"
    OTHER = "Other"


# Statuses after which a tender no longer needs deadline tracking
FINAL_STATUSES = (
    TenderStatus.WON.value,
    TenderStatus.LOST.value,
    TenderStatus.ARCHIVED.value,
    TenderStatus.DROPPED.value,
)


class Tender(Base):
    """Tender record. Nested sub-documents are stored as JSON."""
    __tablename__ = "tenders"

    id = Column(String(64), primary_key=True, default=lambda: f"ten{uuid.uuid4().hex[:12]}")
    tender_number = Column(String(255), nullable=True, index=True)
    jurisdiction = Column(String(255), nullable=True)
    title = Column(String(500), nullable=False)
    department = Column(String(255), nullable=False, default="")
    client_id = Column(String(64), nullable=False, index=True)
    client_name = Column(String(255), nullable=False)

    status = Column(String(50), nullable=False, default=TenderStatus.DRAFTING.value)
    workflow_stage = Column(String(100), nullable=False, default=BidWorkflowStage.IDENTIFICATION.value)

    deadline = Column(String(40), nullable=True)       # ISO-8601
    opening_date = Column(String(40), nullable=True)   # ISO-8601
    value = Column(Float, default=0)
    cost = Column(Float, nullable=True)
    description = Column(Text, default="")
    source = Column(String(255), nullable=True)

    # Eligibility / bid parameters
    total_quantity = Column(Float, nullable=True)
    item_category = Column(String(255), nullable=True)
    min_avg_turnover = Column(String(100), nullable=True)
    oem_avg_turnover = Column(String(100), nullable=True)
    past_experience_years = Column(Float, nullable=True)
    past_performance = Column(String(100), nullable=True)
    emd_amount = Column(Float, nullable=True)
    epbg_percentage = Column(Float, nullable=True)
    epbg_duration = Column(Integer, nullable=True)   # months
    is_bid_to_ra_enabled = Column(Boolean, nullable=True)
    bid_type = Column(String(20), nullable=True)     # Open, Limited, Single
    documents_required = Column(Text, nullable=True)    # one document per line
    mse_exemption = Column(Boolean, nullable=True)
    startup_exemption = Column(Boolean, nullable=True)
    oem_id = Column(String(64), nullable=True)
    product_id = Column(String(64), nullable=True)

    # Assignment
    assigned_to = Column(JSON, default=list)            # [user_id]
    assignment_responses = Column(JSON, default=dict)   # {user_id: {status, notes, responded_at}}

    # Financial instruments
    tender_fee = Column(JSON, nullable=True)
    emd = Column(JSON, nullable=True)    # legacy single EMD
    pbg = Column(JSON, nullable=True)    # legacy single PBG
    emds = Column(JSON, default=list)
    pbgs = Column(JSON, default=list)

    # Workflow data
    checklists = Column(JSON, default=dict)             # {stage: [{id, text, completed}]}
    documents = Column(JSON, default=list)
    history = Column(JSON, default=list)                # append-only
    post_award_process = Column(JSON, default=dict)     # {stage: {status, notes, documents, history}}
    pre_bid_meeting_notes = Column(Text, nullable=True)
    negotiation_details = Column(JSON, nullable=True)
    competitors = Column(JSON, default=list)
    contract_status = Column(String(20), nullable=True)
    payment_status = Column(String(20), nullable=True)
    reason_for_loss = Column(String(50), nullable=True)
    reason_for_loss_notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Tender {self.id} '{self.title[:40]}' [{self.status}/{self.workflow_stage}]>"
