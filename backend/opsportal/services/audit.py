import logging
import uuid
from typing import Any, Optional, Union

from sqlalchemy.orm import Session

from opsportal.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    org_id: Union[uuid.UUID, str],
    actor_id: Union[uuid.UUID, str],
    action: str,
    resource_type: str,
    resource_id: Any = None,
    details: Optional[dict] = None,
    commit: bool = True,
) -> AuditLog:
    """Append one audit row. Pass commit=False to ride on the caller's transaction."""
    entry = AuditLog(
        org_id=org_id if isinstance(org_id, uuid.UUID) else uuid.UUID(str(org_id)),
        actor_id=str(actor_id),
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=dict(details) if isinstance(details, dict) else {},
    )
    db.add(entry)
    if commit:
        db.commit()
    logger.debug("audit %s %s/%s by %s", action, resource_type, resource_id, actor_id)
    return entry
