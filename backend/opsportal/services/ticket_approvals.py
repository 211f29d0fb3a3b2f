"""
L1-L3 approval chain for helpdesk tickets.

A gated ticket waits at one level at a time. An approval moves it to the
next active level of its sub-category config; approving the last active
level completes the chain and routes the ticket to its module queue. A
rejection at any level stops the chain.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from opsportal.models.category import SubCategoryConfig
from opsportal.models.helpdesk import HelpdeskTicket
from opsportal.services.approval_config import LEVELS, active_levels, approvers_for
from opsportal.services.audit import log_action
from opsportal.services.helpdesk import (
    HelpdeskError,
    add_history,
    announce_routed,
    pending_status,
    sub_category_config,
)
from opsportal.services.notifications import ROLE_EMPLOYEE, ROLE_MANAGER, notify

logger = logging.getLogger(__name__)

DECISIONS = ("Approved", "Rejected")


class ApprovalStageError(HelpdeskError):
    pass


class NotAnApproverError(HelpdeskError):
    pass


@dataclass
class QueueItem:
    ticket: HelpdeskTicket
    can_act: bool
    is_historical: bool


def approver_ids(config, level: str) -> set[str]:
    return {a.get("employee_id") for a in approvers_for(config, level) if a.get("employee_id")}


def next_level(levels: list[str], level: str) -> Optional[str]:
    position = LEVELS.index(level)
    return next((name for name in levels if LEVELS.index(name) > position), None)


def is_historical(ticket: HelpdeskTicket) -> bool:
    return bool(ticket.approval_completed) or ticket.approval_status == "Rejected"


def decide(
    db: Session,
    ticket: HelpdeskTicket,
    level: str,
    *,
    approver_id: str,
    approver_name: str,
    status: str,
    comments: Optional[str] = None,
    override: bool = False,
) -> HelpdeskTicket:
    """Record one approver's decision at ``level`` and move the ticket along.

    ``override`` lets a super admin act without being a configured approver.
    """
    label = level.upper()
    if status not in DECISIONS:
        raise ApprovalStageError(f"Unknown decision {status!r}")
    if not ticket.requires_approval or ticket.approval_status != "Pending":
        raise ApprovalStageError("Ticket is not awaiting approval")
    if ticket.current_approval_level != level:
        current = (ticket.current_approval_level or "none").upper()
        raise ApprovalStageError(f"Ticket is not at {label} approval stage. Current stage: {current}")

    config = sub_category_config(db, ticket.org_id, ticket.module or ticket.high_level_category, ticket.sub_category)
    approval_config = config.approval_config if config else None
    if not override and approver_id not in approver_ids(approval_config, level):
        raise NotAnApproverError(f"You are not an {label} approver for this ticket")

    comments = (comments or "").strip() or None
    previous_status = ticket.status
    ticket.approver_history = [*(ticket.approver_history or []), {
        "level": label,
        "approver_id": approver_id,
        "approver_name": approver_name,
        "status": status,
        "comments": comments,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }]
    suffix = f": {comments}" if comments else ""

    following = None
    if status == "Approved":
        following = next_level(active_levels(approval_config), level)
        if following:
            ticket.current_approval_level = following
            ticket.status = pending_status(following)
            add_history(ticket, f"{label}_approved", approver_name,
                        f"{label} Approved by {approver_name}{suffix} - sent for {following.upper()} approval")
        else:
            module = ticket.module or ticket.high_level_category
            ticket.current_approval_level = None
            ticket.approval_completed = True
            ticket.approval_status = "Approved"
            ticket.status = "Routed"
            ticket.routed_to = module
            add_history(ticket, f"{label}_approved", approver_name, f"{label} Approved by {approver_name}{suffix}")
            add_history(ticket, "routed", "System", f"Ticket routed to {module} admin")
    else:
        ticket.current_approval_level = None
        ticket.approval_completed = False
        ticket.approval_status = "Rejected"
        ticket.status = "Rejected"
        add_history(ticket, f"{label}_rejected", approver_name, f"{label} Rejected by {approver_name}{suffix}")

    action = "approve" if status == "Approved" else "reject"
    log_action(db, ticket.org_id, approver_id, f"ticket.{level}_{action}", "helpdesk_ticket", ticket.id,
               {"previous_status": previous_status, "new_status": ticket.status, "comments": comments},
               commit=False)
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket %s %s at %s by %s -> %s", ticket.ticket_number, status.lower(), label, approver_id, ticket.status)

    meta = {"ticket_id": str(ticket.id), "ticket_number": ticket.ticket_number, "level": label}
    if status == "Rejected":
        notify(db, ticket.org_id, ticket.user_id, ROLE_EMPLOYEE, "rejection",
               f"Ticket {ticket.ticket_number} rejected",
               f"{label} rejected by {approver_name}{suffix}", meta)
    elif following:
        notify(db, ticket.org_id, ticket.user_id, ROLE_EMPLOYEE, "approval",
               f"Ticket {ticket.ticket_number} {label} approved",
               f"Approved by {approver_name}, waiting for {following.upper()} approval", meta)
        for next_approver in sorted(approver_ids(approval_config, following)):
            notify(db, ticket.org_id, next_approver, ROLE_MANAGER, "approval",
                   f"Approval needed: {ticket.ticket_number}",
                   f"{ticket.user_name}: {ticket.subject}", meta)
    else:
        notify(db, ticket.org_id, ticket.user_id, ROLE_EMPLOYEE, "approval",
               f"Ticket {ticket.ticket_number} approved",
               f"Final approval by {approver_name}, routed to {ticket.routed_to}", meta)
        announce_routed(db, ticket)
    return ticket


def approver_queue(db: Session, org_id: uuid.UUID, approver_id: str, include_history: bool = False) -> list[QueueItem]:
    """Gated tickets whose chain lists ``approver_id`` at any active level.

    The approver sees every level of those chains but may only act where
    the ticket currently waits at one of their levels.
    """
    configs = {
        (c.high_level_category, c.sub_category): c.approval_config
        for c in db.query(SubCategoryConfig).filter(
            SubCategoryConfig.org_id == org_id,
            SubCategoryConfig.is_active.is_(True),
        ).all()
    }
    q = db.query(HelpdeskTicket).filter(
        HelpdeskTicket.org_id == org_id,
        HelpdeskTicket.requires_approval.is_(True),
    )
    if not include_history:
        q = q.filter(
            HelpdeskTicket.approval_completed.is_(False),
            HelpdeskTicket.approval_status == "Pending",
        )

    items = []
    for ticket in q.order_by(HelpdeskTicket.created_at.desc(), HelpdeskTicket.ticket_number.desc()).all():
        approval_config = configs.get((ticket.module or ticket.high_level_category, ticket.sub_category))
        if not any(approver_id in approver_ids(approval_config, name) for name in LEVELS):
            continue
        historical = is_historical(ticket)
        can_act = (
            not historical
            and ticket.current_approval_level is not None
            and approver_id in approver_ids(approval_config, ticket.current_approval_level)
        )
        items.append(QueueItem(ticket=ticket, can_act=can_act, is_historical=historical))
    return items
