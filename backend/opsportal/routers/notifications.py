"""Notifications router: the signed-in employee's inbox."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import get_current_employee_id, get_current_org_id, get_current_role
from opsportal.models.notification import Notification

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


class NotificationOut(BaseModel):
    id: uuid.UUID
    user_id: Optional[str] = None
    role: str
    type: str
    title: str
    description: str
    is_read: bool
    meta: dict = {}
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# broadcast notifications carry a role name instead of a user id
_ROLE_BROADCAST = {
    "it_admin": "IT_ADMIN",
    "super_admin": "IT_ADMIN",
    "manager": "MANAGER",
}


def _inbox(db: Session, org_id: uuid.UUID, employee_id: str, role: str):
    mine = Notification.user_id == employee_id
    broadcast_role = _ROLE_BROADCAST.get(role)
    if broadcast_role:
        mine = or_(mine, (Notification.user_id.is_(None)) & (Notification.role == broadcast_role))
    return db.query(Notification).filter(Notification.org_id == org_id, mine)


@router.get("/", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(default=50, ge=1, le=200),
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    q = _inbox(db, org_id, employee_id, role)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.created_at.desc()).limit(limit).all()


@router.get("/unread-count")
def unread_count(
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    count = _inbox(db, org_id, employee_id, role).filter(Notification.is_read.is_(False)).count()
    return {"unread": count}


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: uuid.UUID,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    note = _inbox(db, org_id, employee_id, role).filter(Notification.id == notification_id).first()
    if not note:
        raise HTTPException(404, "Notification not found")
    note.is_read = True
    db.commit()
    db.refresh(note)
    return note


@router.put("/read-all")
def mark_all_read(
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    notes = _inbox(db, org_id, employee_id, role).filter(Notification.is_read.is_(False)).all()
    for n in notes:
        n.is_read = True
    db.commit()
    return {"ok": True, "updated": len(notes)}
