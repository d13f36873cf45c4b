"""
TenderDesk - Catalog and Admin Lookup Models
OEMs, products, departments, designations and bidding templates
"""

import uuid
from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.sql import func

from app.core.database import Base


def _prefixed_id(prefix: str):
    return lambda: f"{prefix}{uuid.uuid4().hex[:12]}"


class Oem(Base):
    __tablename__ = "oems"

    id = Column(String(64), primary_key=True, default=_prefixed_id("oem"))
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    website = Column(String(255), nullable=True)
    area = Column(String(255), nullable=True)
    region = Column(String(255), nullable=True)
    account_manager = Column(String(255), nullable=True)
    account_manager_status = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, default=_prefixed_id("prod"))
    name = Column(String(255), nullable=False)
    documents = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Department(Base):
    __tablename__ = "departments"

    id = Column(String(64), primary_key=True, default=_prefixed_id("dept"))
    name = Column(String(255), nullable=False)


class Designation(Base):
    __tablename__ = "designations"

    id = Column(String(64), primary_key=True, default=_prefixed_id("desig"))
    name = Column(String(255), nullable=False)


class BiddingTemplate(Base):
    """Text template with {{tender.field}} placeholders"""
    __tablename__ = "bidding_templates"

    id = Column(String(64), primary_key=True, default=_prefixed_id("btemp"))
    name = Column(String(255), nullable=False)
    content = Column(Text, default="")
