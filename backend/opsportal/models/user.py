import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID as PGUUID

from opsportal.database import Base


# ---------------------------------------------------
# Roles
# ---------------------------------------------------

USER_ROLE_ENUM = String(50)  # keep String to avoid enum migration issues

ROLES = ("employee", "manager", "it_admin", "it_employee", "super_admin")


# ---------------------------------------------------
# Organization
# ---------------------------------------------------

class Organization(Base):
    __tablename__ = "orgs"

    org_id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    name = Column(String(200), nullable=False)
    org_code = Column(String(50), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ---------------------------------------------------
# User
# ---------------------------------------------------

class User(Base):
    __tablename__ = "users"

    user_id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)

    org_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("orgs.org_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # HR-facing identifier used by timesheets, allocations and tickets ("EMP0042")
    employee_id = Column(String(50), nullable=False, index=True)

    email = Column(String(255), nullable=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(USER_ROLE_ENUM, nullable=False, default="employee")

    name = Column(String(200), nullable=True)
    department = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    manager_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
