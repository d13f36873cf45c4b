"""
TenderDesk - User Model
Staff accounts with a single role that gates views and actions
"""

import enum
import uuid
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func

from app.core.database import Base


class Role(str, enum.Enum):
    ADMIN = "Admin"
    SALES = "Sales"
    FINANCE = "Finance"
    VIEWER = "Viewer"


class UserStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class User(Base):
    """Staff users (all roles share one table)"""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: f"user{uuid.uuid4().hex[:12]}")
    name = Column(String(255), nullable=False)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=Role.VIEWER.value)
    avatar_url = Column(String(500), nullable=True)
    status = Column(String(20), default=UserStatus.ACTIVE.value)
    department = Column(String(255), nullable=True)
    designation = Column(String(255), nullable=True)
    specializations = Column(JSON, default=list)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
