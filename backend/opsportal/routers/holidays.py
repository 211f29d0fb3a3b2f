"""Holidays router."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import get_current_org_id, require_super_admin
from opsportal.models.holiday import Holiday

router = APIRouter(prefix="/api/v1/holidays", tags=["Holidays"])


class HolidayIn(BaseModel):
    name: str
    day: date
    type: str = "Public Holiday"
    description: Optional[str] = None


class HolidayUpdate(BaseModel):
    name: Optional[str] = None
    day: Optional[date] = None
    type: Optional[str] = None
    description: Optional[str] = None


class HolidayOut(BaseModel):
    id: uuid.UUID
    name: str
    day: date
    type: str
    description: Optional[str] = None


def _out(h: Holiday) -> HolidayOut:
    return HolidayOut(id=h.id, name=h.name, day=h.date, type=h.type, description=h.description)


def _get(db: Session, org_id: uuid.UUID, holiday_id: uuid.UUID) -> Holiday:
    h = db.query(Holiday).filter(Holiday.id == holiday_id, Holiday.org_id == org_id).first()
    if not h:
        raise HTTPException(404, "Holiday not found")
    return h


@router.get("/", response_model=list[HolidayOut])
def list_holidays(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    org_id: uuid.UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db),
):
    q = db.query(Holiday).filter(Holiday.org_id == org_id)
    if start:
        q = q.filter(Holiday.date >= start)
    if end:
        q = q.filter(Holiday.date <= end)
    return [_out(h) for h in q.order_by(Holiday.date).all()]


@router.post("/", response_model=HolidayOut, status_code=201)
def create_holiday(
    body: HolidayIn,
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    h = Holiday(org_id=org_id, name=body.name, date=body.day, type=body.type, description=body.description)
    db.add(h)
    db.commit()
    db.refresh(h)
    return _out(h)


@router.put("/{holiday_id}", response_model=HolidayOut)
def update_holiday(
    holiday_id: uuid.UUID,
    body: HolidayUpdate,
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    h = _get(db, org_id, holiday_id)
    for field, val in body.model_dump(exclude_unset=True).items():
        setattr(h, "date" if field == "day" else field, val)
    db.commit()
    db.refresh(h)
    return _out(h)


@router.delete("/{holiday_id}")
def delete_holiday(
    holiday_id: uuid.UUID,
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    db.delete(_get(db, org_id, holiday_id))
    db.commit()
    return {"ok": True}
