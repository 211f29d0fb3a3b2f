"""
Authentication and authorization dependencies.

Bearer tokens (services/auth.py) identify a user row. With AUTH_MODE=demo
and no token, the caller is described by headers instead:
X-User-Id, X-Org-Id, X-User-Role and X-Employee-Id.
"""

import os
import uuid
from fastapi import HTTPException, Header, Depends
from sqlalchemy.orm import Session
from typing import Optional

from opsportal.database import get_db
from opsportal.services.auth import decode_access_token
from opsportal.services.ticket_visibility import IT_ADMIN_ROLES
from opsportal.models.user import User

AUTH_MODE = os.getenv("AUTH_MODE", "demo")  # "demo" or "jwt"

# Demo placeholders, used only when AUTH_MODE=demo and no token is provided
DEMO_ORG_ID = "00000000-0000-0000-0000-000000000000"
DEMO_USER_ID = "00000000-0000-0000-0000-000000000000"
DEMO_EMPLOYEE_ID = "EMP0000"
DEMO_ROLE = "employee"

MANAGER_ROLES = ("manager", "super_admin")


def _as_uuid(value) -> uuid.UUID:
    if value is None:
        raise ValueError("None is not a UUID")
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Extract user from Bearer token. Returns None if no token was sent."""
    if not authorization:
        return None

    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        return None

    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    try:
        user_uuid = _as_uuid(sub)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject (user id)")

    user = db.query(User).filter(User.user_id == user_uuid).first()
    if not user or user.is_active is False:
        raise HTTPException(status_code=401, detail="User not found or disabled")

    return user


def get_current_user_id(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    """Extract user UUID from the token, or fall back to demo header."""
    if authorization:
        user = get_current_user(authorization, db)
        if user:
            return user.user_id

    if AUTH_MODE == "demo":
        try:
            return _as_uuid(x_user_id or DEMO_USER_ID)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid X-User-Id (must be UUID)")

    raise HTTPException(status_code=401, detail="Not authenticated")


def get_current_org_id(
    authorization: Optional[str] = Header(default=None),
    x_org_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    """Extract org UUID from the token, or fall back to demo header."""
    if authorization:
        user = get_current_user(authorization, db)
        if user and user.org_id:
            return user.org_id

    if AUTH_MODE == "demo":
        try:
            return _as_uuid(x_org_id or DEMO_ORG_ID)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid X-Org-Id (must be UUID)")

    raise HTTPException(status_code=401, detail="Not authenticated")


def get_current_employee_id(
    authorization: Optional[str] = Header(default=None),
    x_employee_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> str:
    """HR employee id ("EMP0042") of the caller."""
    if authorization:
        user = get_current_user(authorization, db)
        if user:
            return user.employee_id

    if AUTH_MODE == "demo":
        return x_employee_id or DEMO_EMPLOYEE_ID

    raise HTTPException(status_code=401, detail="Not authenticated")


def get_current_role(
    authorization: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> str:
    """Extract role from the token, or fall back to demo header."""
    if authorization:
        user = get_current_user(authorization, db)
        if user:
            return str(user.role)

    if AUTH_MODE == "demo":
        return x_user_role or DEMO_ROLE

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_manager(
    authorization: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> str:
    """Require manager or super admin role. Returns the role."""
    role = get_current_role(authorization, x_user_role, db)
    if role not in MANAGER_ROLES:
        raise HTTPException(status_code=403, detail="Manager access required")
    return role


def require_it_admin(
    authorization: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> str:
    role = get_current_role(authorization, x_user_role, db)
    if role not in IT_ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="IT admin access required")
    return role


def require_super_admin(
    authorization: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> str:
    """Require super_admin role only."""
    role = get_current_role(authorization, x_user_role, db)
    if role != "super_admin":
        raise HTTPException(status_code=403, detail="Super admin access required")
    return role
