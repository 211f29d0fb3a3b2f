"""
Super Admin router: users, roles, helpdesk sub-categories and approver chains.
All endpoints require super_admin role.
"""

import logging
from uuid import UUID
from typing import Annotated, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import get_current_org_id, get_current_user_id, require_super_admin
from opsportal.models.category import SubCategoryConfig
from opsportal.models.user import ROLES, User
from opsportal.services.approval_config import LEVELS, active_levels, flow_label
from opsportal.services.audit import log_action
from opsportal.services.auth import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/super-admin", tags=["super-admin"])


# ---------- schemas ----------

def _known_role(value: str) -> str:
    if value not in ROLES:
        raise ValueError(f"role must be one of {', '.join(ROLES)}")
    return value


RoleName = Annotated[str, AfterValidator(_known_role)]


class UserCreate(BaseModel):
    employee_id: str
    email: str
    password: str = Field(..., min_length=8)
    name: str
    role: RoleName = "employee"
    department: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[RoleName] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    employee_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    department: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


class ApprovalLevel(BaseModel):
    enabled: bool = False
    approvers: list[dict] = []


class ApprovalConfig(BaseModel):
    l1: ApprovalLevel = ApprovalLevel()
    l2: ApprovalLevel = ApprovalLevel()
    l3: ApprovalLevel = ApprovalLevel()


class SubCategoryIn(BaseModel):
    high_level_category: str
    sub_category: str
    requires_approval: bool = False
    processing_queue: str
    specialist_queue: str
    order: int = 999
    is_active: bool = True
    approval_config: ApprovalConfig = ApprovalConfig()


class SubCategoryUpdate(BaseModel):
    requires_approval: Optional[bool] = None
    processing_queue: Optional[str] = None
    specialist_queue: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None
    approval_config: Optional[ApprovalConfig] = None


class SubCategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    high_level_category: str
    sub_category: str
    requires_approval: bool
    processing_queue: str
    specialist_queue: str
    order: int
    is_active: bool
    approval_config: ApprovalConfig
    active_levels: list[str] = []
    flow_label: str = ""


def _config_out(cfg: SubCategoryConfig) -> SubCategoryOut:
    out = SubCategoryOut.model_validate(cfg)
    out.active_levels = [level.upper() for level in active_levels(cfg.approval_config)]
    out.flow_label = flow_label(cfg.approval_config)
    return out


# ---------- Users ----------

@router.get("/users", response_model=list[UserOut])
def list_users(
    role_filter: Optional[str] = None,
    org_id: UUID = Depends(get_current_org_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    q = db.query(User).filter(User.org_id == org_id)
    if role_filter:
        q = q.filter(User.role == role_filter)
    return q.order_by(User.employee_id).all()


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    org_id: UUID = Depends(get_current_org_id),
    actor_id: UUID = Depends(get_current_user_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    email = payload.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already in use")
    if db.query(User).filter(User.org_id == org_id, User.employee_id == payload.employee_id).first():
        raise HTTPException(status_code=409, detail="Employee id already in use")

    user = User(
        org_id=org_id,
        employee_id=payload.employee_id,
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role=payload.role,
        department=payload.department,
        is_active=True,
    )
    db.add(user)
    db.flush()
    log_action(db, org_id, actor_id, "user.create", "user", user.user_id,
               {"employee_id": user.employee_id, "role": user.role}, commit=False)
    db.commit()
    db.refresh(user)
    return user


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    org_id: UUID = Depends(get_current_org_id),
    actor_id: UUID = Depends(get_current_user_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.user_id == user_id, User.org_id == org_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changes = payload.model_dump(exclude_unset=True)
    for field, val in changes.items():
        setattr(user, field, val)
    log_action(db, org_id, actor_id, "user.update", "user", user.user_id, changes, commit=False)
    db.commit()
    db.refresh(user)
    return user


# ---------- Sub-category configs ----------

@router.get("/sub-categories", response_model=list[SubCategoryOut])
def list_sub_categories(
    high_level_category: Optional[str] = None,
    org_id: UUID = Depends(get_current_org_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    q = db.query(SubCategoryConfig).filter(SubCategoryConfig.org_id == org_id)
    if high_level_category:
        q = q.filter(SubCategoryConfig.high_level_category == high_level_category)
    rows = q.order_by(SubCategoryConfig.order, SubCategoryConfig.sub_category).all()
    return [_config_out(c) for c in rows]


@router.post("/sub-categories", response_model=SubCategoryOut, status_code=201)
def create_sub_category(
    payload: SubCategoryIn,
    org_id: UUID = Depends(get_current_org_id),
    actor_id: UUID = Depends(get_current_user_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    exists = db.query(SubCategoryConfig).filter(
        SubCategoryConfig.org_id == org_id,
        SubCategoryConfig.high_level_category == payload.high_level_category,
        SubCategoryConfig.sub_category == payload.sub_category,
    ).first()
    if exists:
        raise HTTPException(status_code=409, detail="Sub-category already exists")

    cfg = SubCategoryConfig(org_id=org_id, **payload.model_dump())
    db.add(cfg)
    db.flush()
    log_action(db, org_id, actor_id, "subcategory.create", "sub_category_config", cfg.id,
               {"sub_category": cfg.sub_category, "flow": flow_label(cfg.approval_config)}, commit=False)
    db.commit()
    db.refresh(cfg)
    return _config_out(cfg)


@router.put("/sub-categories/{config_id}", response_model=SubCategoryOut)
def update_sub_category(
    config_id: UUID,
    payload: SubCategoryUpdate,
    org_id: UUID = Depends(get_current_org_id),
    actor_id: UUID = Depends(get_current_user_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    cfg = db.query(SubCategoryConfig).filter(
        SubCategoryConfig.id == config_id,
        SubCategoryConfig.org_id == org_id,
    ).first()
    if not cfg:
        raise HTTPException(status_code=404, detail="Sub-category not found")

    changes = payload.model_dump(exclude_unset=True)
    for field, val in changes.items():
        setattr(cfg, field, val)
    log_action(db, org_id, actor_id, "subcategory.update", "sub_category_config", cfg.id,
               {"fields": sorted(changes), "flow": flow_label(cfg.approval_config)}, commit=False)
    db.commit()
    db.refresh(cfg)
    return _config_out(cfg)


@router.delete("/sub-categories/{config_id}")
def delete_sub_category(
    config_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    actor_id: UUID = Depends(get_current_user_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    cfg = db.query(SubCategoryConfig).filter(
        SubCategoryConfig.id == config_id,
        SubCategoryConfig.org_id == org_id,
    ).first()
    if not cfg:
        raise HTTPException(status_code=404, detail="Sub-category not found")
    db.delete(cfg)
    log_action(db, org_id, actor_id, "subcategory.delete", "sub_category_config", config_id,
               {"sub_category": cfg.sub_category}, commit=False)
    db.commit()
    return {"ok": True}


@router.get("/approval-levels")
def approval_levels(role: str = Depends(require_super_admin)):
    return [level.upper() for level in LEVELS]
