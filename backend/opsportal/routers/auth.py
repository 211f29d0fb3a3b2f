"""
Authentication router: login and current-user lookup.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import get_current_user
from opsportal.models.user import Organization, User
from opsportal.services.auth import JWT_EXPIRY_HOURS, create_access_token, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------- schemas ----------

class LoginRequest(BaseModel):
    email: str
    password: str
    org_code: Optional[str] = None


class UserOut(BaseModel):
    user_id: UUID
    employee_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    org_id: Optional[UUID] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


def _user_out(user: User) -> UserOut:
    return UserOut(
        user_id=user.user_id,
        employee_id=user.employee_id,
        email=user.email,
        name=user.name,
        role=user.role,
        org_id=user.org_id,
    )


# ---------- endpoints ----------

@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.strip().lower()).first()
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")

    # If org_code provided, verify the user belongs to that org
    if body.org_code:
        org = db.query(Organization).filter(Organization.org_code == body.org_code.strip()).first()
        if not org:
            raise HTTPException(status_code=404, detail="Company code not found")
        if user.org_id != org.org_id:
            raise HTTPException(status_code=403, detail="You do not belong to this organization")

    token = create_access_token(
        data={"sub": str(user.user_id)},
        expires_delta=timedelta(hours=JWT_EXPIRY_HOURS),
    )
    return LoginResponse(access_token=token, user=_user_out(user))


@router.get("/me", response_model=UserOut)
def me(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    if not authorization:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = get_current_user(authorization, db)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return _user_out(user)
