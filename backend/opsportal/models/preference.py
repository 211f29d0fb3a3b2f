import uuid

from sqlalchemy import Column, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base


class ViewPreference(Base):
    __tablename__ = "view_preferences"
    __table_args__ = (UniqueConstraint("user_id", "view", name="uq_pref_user_view"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    view = Column(String(100), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
