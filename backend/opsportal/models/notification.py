import uuid

from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base

NOTIFICATION_TYPES = (
    "leave", "ticket", "system", "announcement", "reminder",
    "celebration", "approval", "rejection",
)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    user_id = Column(String(50), nullable=True, index=True)  # employee id; null = role broadcast
    role = Column(String(30), nullable=False)
    type = Column(String(30), nullable=False)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
