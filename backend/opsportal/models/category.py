import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Integer, JSON, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID

from opsportal.database import Base


def _empty_approval_config() -> dict:
    return {level: {"enabled": False, "approvers": []} for level in ("l1", "l2", "l3")}


class SubCategoryConfig(Base):
    __tablename__ = "sub_category_configs"
    __table_args__ = (
        UniqueConstraint("org_id", "high_level_category", "sub_category", name="uq_subcat"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    high_level_category = Column(String(30), nullable=False)  # IT / Facilities / Finance
    sub_category = Column(String(200), nullable=False)
    requires_approval = Column(Boolean, nullable=False, default=False)
    processing_queue = Column(String(100), nullable=False)
    specialist_queue = Column(String(100), nullable=False)
    order = Column(Integer, nullable=False, default=999)
    is_active = Column(Boolean, nullable=False, default=True)
    approval_config = Column(JSON, nullable=False, default=_empty_approval_config)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
