import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Date, Integer
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base


class Project(Base):
    __tablename__ = "projects"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    project_code = Column(String(100), nullable=True)
    project_name = Column(String(200), nullable=False)
    project_start_date = Column(Date, nullable=True)
    project_end_date = Column(Date, nullable=True)
    manager_employee_id = Column(String(50), nullable=True, index=True)
    manager_name = Column(String(200), nullable=True)
    status = Column(String(30), nullable=False, server_default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Allocation(Base):
    """Financial-line allocation of an employee to a project for a date window."""

    __tablename__ = "allocations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    employee_id = Column(String(50), nullable=False, index=True)
    project_id = Column(String(100), nullable=False, index=True)
    allocation = Column(Integer, nullable=False, default=100)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    role = Column(String(100), nullable=True)
    billable = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, server_default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
