"""
TenderDesk - Models Package
"""

from app.models.tender import (
    Tender,
    TenderStatus,
    BidWorkflowStage,
    PostAwardStage,
    ProcessStageStatus,
    AssignmentStatus,
    ReasonForLoss,
    TenderDocumentType,
    FINAL_STATUSES,
)
from app.models.client import Client, ClientStatus, ClientAcquisitionSource, InteractionType
from app.models.financial import (
    FinancialRequest,
    FinancialRequestType,
    FinancialRequestStatus,
    EMDStatus,
    PBGStatus,
)
from app.models.catalog import Oem, Product, Department, Designation, BiddingTemplate
from app.models.user import User, Role, UserStatus

__all__ = [
    "Tender",
    "TenderStatus",
    "BidWorkflowStage",
    "PostAwardStage",
    "ProcessStageStatus",
    "AssignmentStatus",
    "ReasonForLoss",
    "TenderDocumentType",
    "FINAL_STATUSES",
    "Client",
    "ClientStatus",
    "ClientAcquisitionSource",
    "InteractionType",
    "FinancialRequest",
    "FinancialRequestType",
    "FinancialRequestStatus",
    "EMDStatus",
    "PBGStatus",
    "Oem",
    "Product",
    "Department",
    "Designation",
    "BiddingTemplate",
    "User",
    "Role",
    "UserStatus",
]
