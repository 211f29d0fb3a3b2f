"""
Helpdesk ticket lifecycle: creation and routing, assignment, reassignment.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from opsportal.models.category import SubCategoryConfig
from opsportal.models.helpdesk import HelpdeskTicket, ITSpecialist
from opsportal.services.approval_config import first_active_level
from opsportal.services.audit import log_action
from opsportal.services.notifications import (
    ROLE_EMPLOYEE,
    ROLE_IT_ADMIN,
    ROLE_IT_EMPLOYEE,
    notify,
)

logger = logging.getLogger(__name__)


class HelpdeskError(ValueError):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def add_history(ticket: HelpdeskTicket, action: str, by: str, details: str, new_status: Optional[str] = None) -> None:
    # JSON columns only notice reassignment, never in-place appends
    ticket.history = [*(ticket.history or []), {
        "action": action,
        "timestamp": _now_iso(),
        "by": by,
        "details": details,
        "new_status": new_status or ticket.status,
    }]


def pending_status(level: str) -> str:
    return f"Pending Level-{level[1:]} Approval"


def sub_category_config(
    db: Session, org_id: uuid.UUID, module: Optional[str], sub_category: Optional[str],
) -> Optional[SubCategoryConfig]:
    if not sub_category:
        return None
    return db.query(SubCategoryConfig).filter(
        SubCategoryConfig.org_id == org_id,
        SubCategoryConfig.high_level_category == module,
        SubCategoryConfig.sub_category == sub_category,
        SubCategoryConfig.is_active.is_(True),
    ).first()


def next_ticket_number(db: Session, org_id: uuid.UUID) -> str:
    count = db.query(HelpdeskTicket).filter(HelpdeskTicket.org_id == org_id).count()
    return f"TKT{count + 1:04d}"


def create_ticket(
    db: Session,
    org_id: uuid.UUID,
    *,
    module: str,
    sub_category: Optional[str],
    subject: str,
    description: Optional[str],
    urgency: str,
    user_id: str,
    user_name: str,
    user_email: Optional[str] = None,
) -> HelpdeskTicket:
    """Create a ticket; its sub-category config decides whether approval gates routing."""
    config = sub_category_config(db, org_id, module, sub_category)
    first_level = first_active_level(config.approval_config) if config and config.requires_approval else None
    requires_approval = first_level is not None

    ticket = HelpdeskTicket(
        org_id=org_id,
        ticket_number=next_ticket_number(db, org_id),
        module=module,
        high_level_category=module,
        sub_category=sub_category,
        subject=subject,
        description=description,
        urgency=urgency,
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        requires_approval=requires_approval,
        approver_history=[],
        history=[],
    )
    if requires_approval:
        ticket.status = pending_status(first_level)
        ticket.approval_completed = False
        ticket.approval_status = "Pending"
        ticket.current_approval_level = first_level
        ticket.routed_to = None
        details = f"Ticket created for {module} module - sent for {first_level.upper()} approval"
    else:
        ticket.status = "Routed"
        ticket.approval_completed = True
        ticket.routed_to = module
        details = f"Ticket created for {module} module - routed directly to {module} admin"
    add_history(ticket, "created", user_name, details)

    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket created: %s module=%s approval=%s", ticket.ticket_number, module, requires_approval)

    announce_routed(db, ticket)
    return ticket


def announce_routed(db: Session, ticket: HelpdeskTicket) -> None:
    if ticket.routed_to == "IT":
        notify(db, ticket.org_id, None, ROLE_IT_ADMIN, "ticket",
               f"New ticket {ticket.ticket_number}", f"{ticket.user_name}: {ticket.subject}",
               {"ticket_id": str(ticket.id)})


def _specialist(db: Session, org_id: uuid.UUID, employee_id: str) -> Optional[ITSpecialist]:
    return db.query(ITSpecialist).filter(
        ITSpecialist.org_id == org_id,
        ITSpecialist.employee_id == employee_id,
    ).first()


def assign_ticket(
    db: Session,
    ticket: HelpdeskTicket,
    *,
    employee_id: str,
    employee_name: str,
    assigned_by_id: str,
    assigned_by_name: str,
    notes: Optional[str] = None,
) -> HelpdeskTicket:
    ticket.assignment = {
        "assigned_to_id": employee_id,
        "assigned_to_name": employee_name,
        "assigned_by": assigned_by_id,
        "assigned_by_name": assigned_by_name,
        "assigned_by_role": "IT_ADMIN",
        "assigned_at": _now_iso(),
        "assignment_notes": notes,
    }
    ticket.status = "Assigned"
    add_history(ticket, "assigned", assigned_by_name,
             f"Assigned to {employee_name}" + (f": {notes}" if notes else ""))

    specialist = _specialist(db, ticket.org_id, employee_id)
    if specialist:
        specialist.active_ticket_count = (specialist.active_ticket_count or 0) + 1

    log_action(db, ticket.org_id, assigned_by_id, "ticket.assign", "helpdesk_ticket", ticket.id,
               {"assigned_to": employee_id}, commit=False)
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket %s assigned to %s by %s", ticket.ticket_number, employee_id, assigned_by_id)

    meta = {"ticket_id": str(ticket.id), "ticket_number": ticket.ticket_number}
    notify(db, ticket.org_id, ticket.user_id, ROLE_EMPLOYEE, "ticket",
           f"Ticket {ticket.ticket_number} assigned",
           f"Your ticket has been assigned to {employee_name}", meta)
    notify(db, ticket.org_id, employee_id, ROLE_IT_EMPLOYEE, "ticket",
           f"New assignment: {ticket.ticket_number}",
           f"{assigned_by_name} assigned you: {ticket.subject}", meta)
    return ticket


def reassign_ticket(
    db: Session,
    ticket: HelpdeskTicket,
    *,
    new_employee_id: str,
    new_employee_name: str,
    reassigned_by_id: str,
    reassigned_by_name: str,
    reason: Optional[str],
) -> HelpdeskTicket:
    current = ticket.assignment or {}
    if not current.get("assigned_to_id"):
        raise HelpdeskError("Ticket must be assigned before it can be reassigned")
    if not reason or not reason.strip():
        raise HelpdeskError("Reassignment reason is required")

    previous_id = current["assigned_to_id"]
    previous_name = current.get("assigned_to_name")
    ticket.assignment = {
        "assigned_to_id": new_employee_id,
        "assigned_to_name": new_employee_name,
        "assigned_by": reassigned_by_id,
        "assigned_by_name": reassigned_by_name,
        "assigned_by_role": "IT_ADMIN",
        "assigned_at": _now_iso(),
        "assignment_notes": reason,
        "previous_assignee_id": previous_id,
        "previous_assignee_name": previous_name,
    }
    add_history(ticket, "reassigned", reassigned_by_name,
             f"Reassigned from {previous_name} to {new_employee_name}. Reason: {reason}")

    old = _specialist(db, ticket.org_id, previous_id)
    if old and old.active_ticket_count:
        old.active_ticket_count -= 1
    new = _specialist(db, ticket.org_id, new_employee_id)
    if new:
        new.active_ticket_count = (new.active_ticket_count or 0) + 1

    log_action(db, ticket.org_id, reassigned_by_id, "ticket.reassign", "helpdesk_ticket", ticket.id,
               {"from": previous_id, "to": new_employee_id, "reason": reason}, commit=False)
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket %s reassigned %s -> %s", ticket.ticket_number, previous_id, new_employee_id)

    meta = {"ticket_id": str(ticket.id), "ticket_number": ticket.ticket_number}
    notify(db, ticket.org_id, previous_id, ROLE_IT_EMPLOYEE, "ticket",
           f"Ticket {ticket.ticket_number} reassigned",
           f"Reassigned to {new_employee_name}. Reason: {reason}", meta)
    notify(db, ticket.org_id, new_employee_id, ROLE_IT_EMPLOYEE, "ticket",
           f"New assignment: {ticket.ticket_number}",
           f"{reassigned_by_name} assigned you: {ticket.subject}", meta)
    return ticket
