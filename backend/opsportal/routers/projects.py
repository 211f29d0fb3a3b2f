"""Projects and allocations: the reference data that gates timesheet cells."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import (
    MANAGER_ROLES,
    get_current_employee_id,
    get_current_org_id,
    get_current_role,
    require_manager,
)
from opsportal.models.project import Allocation, Project

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])
allocations_router = APIRouter(prefix="/api/v1/allocations", tags=["Allocations"])


# ---------- schemas ----------

class ProjectIn(BaseModel):
    project_id: str
    project_code: Optional[str] = None
    project_name: str
    project_start_date: Optional[date] = None
    project_end_date: Optional[date] = None
    manager_employee_id: Optional[str] = None
    manager_name: Optional[str] = None
    status: str = "active"


class ProjectOut(ProjectIn):
    id: uuid.UUID

    model_config = {"from_attributes": True}


class AllocationIn(BaseModel):
    employee_id: str
    project_id: str
    allocation: int = Field(default=100, ge=0, le=100)
    start_date: date
    end_date: Optional[date] = None
    role: Optional[str] = None
    billable: bool = True
    status: str = "active"

    @model_validator(mode="after")
    def _window(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AllocationOut(AllocationIn):
    id: uuid.UUID

    model_config = {"from_attributes": True}


# ---------- projects ----------

@router.get("/", response_model=list[ProjectOut])
def list_projects(
    org_id: uuid.UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db),
):
    return db.query(Project).filter(Project.org_id == org_id).order_by(Project.project_name).all()


@router.get("/managed", response_model=list[ProjectOut])
def managed_projects(
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    return db.query(Project).filter(
        Project.org_id == org_id,
        Project.manager_employee_id == employee_id,
    ).order_by(Project.project_name).all()


@router.post("/", response_model=ProjectOut, status_code=201)
def create_project(
    body: ProjectIn,
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    if db.query(Project).filter(Project.org_id == org_id, Project.project_id == body.project_id).first():
        raise HTTPException(409, "Project id already exists")
    project = Project(org_id=org_id, **body.model_dump())
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


# ---------- allocations ----------

@allocations_router.get("/employee/{employee_id}", response_model=list[AllocationOut])
def employee_allocations(
    employee_id: str,
    active_on: Optional[date] = Query(None, description="Only allocations whose window covers this date"),
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    if employee_id != caller and role not in MANAGER_ROLES:
        raise HTTPException(403, "You can only view your own allocations")
    q = db.query(Allocation).filter(
        Allocation.org_id == org_id,
        Allocation.employee_id == employee_id,
    )
    if active_on:
        q = q.filter(
            Allocation.start_date <= active_on,
            or_(Allocation.end_date.is_(None), Allocation.end_date >= active_on),
        )
    return q.order_by(Allocation.start_date).all()


@allocations_router.post("/", response_model=AllocationOut, status_code=201)
def create_allocation(
    body: AllocationIn,
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    if not db.query(Project).filter(Project.org_id == org_id, Project.project_id == body.project_id).first():
        raise HTTPException(404, "Project not found")
    allocation = Allocation(org_id=org_id, **body.model_dump())
    db.add(allocation)
    db.commit()
    db.refresh(allocation)
    return allocation
