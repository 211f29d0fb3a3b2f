"""Ticket approvals router: L1-L3 decisions and the approver queues."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import get_current_employee_id, get_current_org_id, get_current_role
from opsportal.routers.helpdesk import caller_name, get_ticket_or_404
from opsportal.schemas.helpdesk import (
    ApprovalDecision,
    ApprovalHistoryOut,
    ApproverTicketOut,
    TicketOut,
)
from opsportal.services import ticket_approvals
from opsportal.services.approval_config import LEVELS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/helpdesk/approvals", tags=["Helpdesk Approvals"])


def _queue(db: Session, org_id: uuid.UUID, approver_id: str, caller: str, role: str, include_history: bool):
    if approver_id != caller and role != "super_admin":
        raise HTTPException(403, "You can only view your own approval queue")
    out = []
    for item in ticket_approvals.approver_queue(db, org_id, approver_id, include_history=include_history):
        out.append(ApproverTicketOut(
            **TicketOut.model_validate(item.ticket).model_dump(),
            can_approve=item.can_act,
            can_reject=item.can_act,
            view_only=not item.can_act,
            is_historical=item.is_historical,
        ))
    return out


@router.get("/pending/{approver_id}", response_model=list[ApproverTicketOut])
def pending_approvals(
    approver_id: str,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    return _queue(db, org_id, approver_id, employee_id, role, include_history=False)


@router.get("/all/{approver_id}", response_model=list[ApproverTicketOut])
def all_approver_tickets(
    approver_id: str,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    return _queue(db, org_id, approver_id, employee_id, role, include_history=True)


@router.get("/history/{ticket_id}", response_model=ApprovalHistoryOut)
def approval_history(
    ticket_id: uuid.UUID,
    org_id: uuid.UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db),
):
    return get_ticket_or_404(db, org_id, ticket_id)


@router.post("/{level}/{ticket_id}", response_model=TicketOut)
def decide_level(
    level: str,
    ticket_id: uuid.UUID,
    body: ApprovalDecision,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    level = level.lower()
    if level not in LEVELS:
        raise HTTPException(404, f"Unknown approval level: {level}")
    ticket = get_ticket_or_404(db, org_id, ticket_id)
    try:
        return ticket_approvals.decide(
            db, ticket, level,
            approver_id=employee_id,
            approver_name=body.approver_name or caller_name(db, org_id, employee_id) or employee_id,
            status=body.status,
            comments=body.comments,
            override=role == "super_admin",
        )
    except ticket_approvals.NotAnApproverError as e:
        raise HTTPException(403, str(e))
    except ticket_approvals.ApprovalStageError as e:
        raise HTTPException(400, str(e))
