"""
TenderDesk - User and Authentication Routes
Login, current user, seeding and admin user management
"""

import re
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime, timezone
from loguru import logger

from app.core.config import settings
from app.core.database import get_db
from app.core.auth import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_user,
    require_admin,
)
from app.models.user import User, Role, UserStatus
from app.api.serializers import _user_to_dict, _rows

auth_router = APIRouter(prefix="/api/users", tags=["Users"])

PRIMARY_ADMIN_USERNAME = "admin"

DEFAULT_USERS = [
    {"name": "Admin User", "username": "admin", "role": Role.ADMIN.value, "designation": "Bid Manager"},
    {"name": "Sales User", "username": "sales.user", "role": Role.SALES.value, "designation": "Sales Executive"},
    {"name": "Finance User", "username": "finance.user", "role": Role.FINANCE.value, "designation": "Accounts"},
    {"name": "Viewer User", "username": "viewer.user", "role": Role.VIEWER.value, "designation": "Management"},
]


# ============================
# PYDANTIC SCHEMAS
# ============================

class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


class UserCreateRequest(BaseModel):
    name: str
    role: Role = Role.VIEWER
    avatar_url: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    specializations: Optional[List[str]] = None


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    role: Optional[Role] = None
    avatar_url: Optional[str] = None
    status: Optional[UserStatus] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    specializations: Optional[List[str]] = None


def username_for(name: str) -> str:
    """'Sales User' -> 'sales.user'"""
    return re.sub(r"\s+", ".", name.strip().lower())


def _avatar_for(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={name.strip().replace(' ', '+')}"


def _sorted_users(db: Session) -> List[dict]:
    return _rows(db.query(User).order_by(User.name).all(), _user_to_dict)


def _get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ============================
# AUTH ENDPOINTS
# ============================

@auth_router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Login with username (or email) + password"""
    user = db.query(User).filter(
        (User.username == request.username) | (User.email == request.username)
    ).first()

    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=403, detail="Account suspended")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    token = create_access_token(user.id, user.role, {"username": user.username})
    logger.info(f"User {user.username} logged in")
    return TokenResponse(access_token=token, user=_user_to_dict(user))


@auth_router.get("/me")
def me(user: User = Depends(get_current_user)):
    """Get current user info"""
    return _user_to_dict(user)


@auth_router.post("/seed")
def seed_users(db: Session = Depends(get_db)):
    """Create the default staff accounts if no user exists (first-time setup)"""
    if db.query(User).first():
        raise HTTPException(status_code=400, detail="Users already exist")

    for data in DEFAULT_USERS:
        db.add(User(
            **data,
            email=f"{data['username']}@{settings.EMAIL_DOMAIN}",
            password_hash=hash_password(settings.DEFAULT_USER_PASSWORD),
            avatar_url=_avatar_for(data["name"]),
            status=UserStatus.ACTIVE.value,
            specializations=[],
        ))
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_USERS)} default users")
    return {
        "message": "Default users created",
        "usernames": [u["username"] for u in DEFAULT_USERS],
        "password": settings.DEFAULT_USER_PASSWORD,
    }


# ============================
# USER MANAGEMENT
# ============================

@auth_router.get("")
def list_users(db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return _sorted_users(db)


@auth_router.post("", status_code=201)
def create_user(
    request: UserCreateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Create a user with a derived username/email. Returns the full user list."""
    username = username_for(request.name)
    if not username:
        raise HTTPException(status_code=400, detail="Name is required")
    email = f"{username}@{settings.EMAIL_DOMAIN}"

    existing = db.query(User).filter((User.username == username) | (User.email == email)).first()
    if existing:
        raise HTTPException(status_code=400, detail=f"A user with the name '{request.name}' already exists.")

    db.add(User(
        name=request.name.strip(),
        username=username,
        email=email,
        password_hash=hash_password(settings.DEFAULT_USER_PASSWORD),
        role=request.role.value,
        avatar_url=request.avatar_url or _avatar_for(request.name),
        status=UserStatus.ACTIVE.value,
        department=request.department,
        designation=request.designation,
        specializations=request.specializations or [],
    ))
    db.commit()
    logger.info(f"{admin.username} created user {username} ({request.role.value})")
    return _sorted_users(db)


@auth_router.put("/{user_id}")
def update_user(
    user_id: str,
    request: UserUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Partial update (role, status, profile). Returns the full user list."""
    user = _get_user_or_404(db, user_id)
    changes = request.model_dump(exclude_unset=True)

    for field, value in changes.items():
        if field == "specializations":
            value = list(value or [])
        elif isinstance(value, (Role, UserStatus)):
            value = value.value
        setattr(user, field, value)

    db.commit()
    logger.info(f"{admin.username} updated user {user.username}: {sorted(changes)}")
    return _sorted_users(db)


@auth_router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)
    if user.username == PRIMARY_ADMIN_USERNAME:
        raise HTTPException(status_code=400, detail="Cannot delete the primary admin user.")

    db.delete(user)
    db.commit()
    logger.info(f"{admin.username} deleted user {user.username}")
    return {"message": "User removed"}
