import uuid

from sqlalchemy import Column, String, Text, DateTime, Date
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    date = Column(Date, nullable=False, index=True)
    type = Column(String(50), nullable=False, server_default="Public Holiday")
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
