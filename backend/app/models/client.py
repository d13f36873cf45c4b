"""
TenderDesk - Client Model
CRM accounts with contacts, interaction log and change history
"""

import enum
import uuid
from sqlalchemy import Column, String, Text, DateTime, Float, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class ClientStatus(str, enum.Enum):
    ACTIVE = "Active"
    LEAD = "Lead"
    DORMANT = "Dormant"
    LOST = "Lost"


class ClientAcquisitionSource(str, enum.Enum):
    COLD_CALLING = "Cold Calling"
    EXISTING_CUSTOMER = "Existing Customer New Enquiries"
    REFERRAL = "Referrals"
    TELEPHONIC = "Telephonic Outreach"
    SOCIAL = "Social Platforms"
    OTHER = "Other"


class InteractionType(str, enum.Enum):
    CALL = "Call"
    EMAIL = "Email"
    MEETING = "Meeting"


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(64), primary_key=True, default=lambda: f"cli{uuid.uuid4().hex[:12]}")
    name = Column(String(255), nullable=False, index=True)
    industry = Column(String(255), default="")
    gstin = Column(String(20), default="")
    revenue = Column(Float, default=0)
    joined_date = Column(String(40), nullable=True)
    status = Column(String(20), default=ClientStatus.LEAD.value)
    category = Column(String(100), default="")
    source = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    potential_value = Column(Float, nullable=True)
    contacts = Column(JSON, default=list)        # [{id, name, role, email, phone, is_primary}]
    history = Column(JSON, default=list)
    interactions = Column(JSON, default=list)    # [{id, type, notes, user_id, user, timestamp}]
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Client {self.name}>"
