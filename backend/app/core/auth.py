"""
TenderDesk - Authentication Utilities
JWT token management, password hashing and role dependencies
"""

import jwt
import hmac
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from fastapi import HTTPException, Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.models.user import User, Role, UserStatus

JWT_ALGORITHM = "HS256"
PBKDF2_ITERATIONS = 120_000


def _derive(password: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()


def hash_password(password: str) -> str:
    """Stored as iterations$salt$digest"""
    salt = secrets.token_hex(16)
    return f"{PBKDF2_ITERATIONS}${salt}${_derive(password, salt, PBKDF2_ITERATIONS)}"


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    parts = (password_hash or "").split("$")
    if len(parts) != 3 or not parts[0].isdigit():
        return False
    iterations, salt, digest = int(parts[0]), parts[1], parts[2]
    return hmac.compare_digest(_derive(password, salt, iterations), digest)


def create_access_token(user_id: str, role: str, extra_claims: dict = None) -> str:
    issued = datetime.now(timezone.utc)
    payload = {
        **(extra_claims or {}),
        "sub": user_id,
        "role": role,
        "iat": issued,
        "exp": issued + timedelta(hours=settings.JWT_EXPIRATION_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode a bearer token, mapping every JWT failure to a 401"""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired, please log in again")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid authentication token")


def bearer_token(request: Request) -> str:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: resolve the authenticated, active user"""
    claims = decode_token(bearer_token(request))
    user = db.query(User).filter(User.id == claims.get("sub")).first()
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")
    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=403, detail="Account suspended")
    return user


def require_roles(*roles: Role) -> Callable[..., User]:
    """Dependency factory: require the current user to hold one of `roles`"""
    allowed = {r.value for r in roles}

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"{' or '.join(sorted(allowed))} access required",
            )
        return user

    return _dependency


require_admin = require_roles(Role.ADMIN)
require_editor = require_roles(Role.ADMIN, Role.SALES)
