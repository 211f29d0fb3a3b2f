import uuid

from sqlalchemy import Column, String, Text, Boolean, DateTime, Integer, JSON
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base


class HelpdeskTicket(Base):
    __tablename__ = "helpdesk_tickets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    ticket_number = Column(String(30), nullable=False, index=True)

    # module is fixed at creation; high_level_category is the legacy name for it
    module = Column(String(30), nullable=True)
    high_level_category = Column(String(30), nullable=False)
    sub_category = Column(String(200), nullable=True)
    subject = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    urgency = Column(String(20), nullable=False, server_default="Medium")

    user_id = Column(String(50), nullable=False)  # requester employee id
    user_name = Column(String(200), nullable=False)
    user_email = Column(String(255), nullable=True)

    status = Column(String(30), nullable=False, server_default="open")
    requires_approval = Column(Boolean, nullable=False, default=False)
    approval_completed = Column(Boolean, nullable=False, default=False)
    routed_to = Column(String(30), nullable=True)

    # approval chain: current level ("l1".."l3", null once decided) and per-level decisions
    current_approval_level = Column(String(5), nullable=True)
    approval_status = Column(String(20), nullable=True)  # Pending / Approved / Rejected
    approver_history = Column(JSON, nullable=False, default=list)

    assignment = Column(JSON, nullable=True)
    history = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ITSpecialist(Base):
    __tablename__ = "it_specialists"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    employee_id = Column(String(50), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    specializations = Column(JSON, nullable=False, default=list)
    active_ticket_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
