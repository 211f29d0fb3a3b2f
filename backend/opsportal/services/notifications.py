"""
Notification side channel.

Creating a notification must never break the action that triggered it, so
callers commit their own work first; notify() then commits the
notification separately and logs any failure instead of raising.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsportal.models.notification import NOTIFICATION_TYPES, Notification

logger = logging.getLogger(__name__)

ROLE_EMPLOYEE = "EMPLOYEE"
ROLE_MANAGER = "MANAGER"
ROLE_IT_ADMIN = "IT_ADMIN"
ROLE_IT_EMPLOYEE = "IT_EMPLOYEE"


def notify(
    db: Session,
    org_id: uuid.UUID,
    user_id: Optional[str],
    role: str,
    type: str,
    title: str,
    description: str,
    meta: Optional[dict] = None,
) -> Optional[Notification]:
    if type not in NOTIFICATION_TYPES:
        logger.warning("Unknown notification type %r for %s, skipped", type, user_id)
        return None

    note = Notification(
        org_id=org_id,
        user_id=user_id,
        role=role,
        type=type,
        title=title,
        description=description,
        meta=meta or {},
    )
    try:
        db.add(note)
        db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to create %s notification for %s", type, user_id)
        db.rollback()
        return None
    return note
