import uuid

from sqlalchemy import Column, String, Text, DateTime, Date, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base


class TimesheetEntry(Base):
    """One category line for one employee on one date.

    The weekly grid shown to users is rebuilt from these rows, see
    services/timesheet_transform.py.
    """

    __tablename__ = "timesheet_entries"
    __table_args__ = (
        UniqueConstraint("org_id", "employee_id", "date", "project_id", "uda_id", name="uq_ts_cell"),
        Index("ix_ts_employee_date", "employee_id", "date"),
        Index("ix_ts_project_date", "project_id", "date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False)
    employee_id = Column(String(50), nullable=False)
    employee_name = Column(String(200), nullable=False)
    date = Column(Date, nullable=False)

    project_id = Column(String(100), nullable=False, server_default="N/A")
    project_code = Column(String(100), nullable=False, server_default="")
    project_name = Column(String(200), nullable=False, server_default="")
    uda_id = Column(String(100), nullable=False)
    uda_name = Column(String(200), nullable=False)
    type = Column(String(50), nullable=False, server_default="General")
    financial_line_item = Column(String(200), nullable=False, server_default="")
    billable = Column(String(30), nullable=False, server_default="Billable")

    hours = Column(String(5), nullable=False)  # "HH:MM"
    comment = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, server_default="submitted")
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    approval_status = Column(String(30), nullable=False, server_default="pending", index=True)
    approved_by = Column(String(50), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
