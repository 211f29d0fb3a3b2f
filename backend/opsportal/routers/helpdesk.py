"""Helpdesk router: raising tickets and the IT admin dashboard."""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import (
    get_current_employee_id,
    get_current_org_id,
    require_it_admin,
)
from opsportal.models.helpdesk import HelpdeskTicket, ITSpecialist
from opsportal.models.user import User
from opsportal.schemas.helpdesk import (
    AssignRequest,
    ReassignRequest,
    SpecialistOut,
    TicketCreate,
    TicketFilterOptions,
    TicketOut,
    TicketStats,
    TicketViewParams,
)
from opsportal.services import helpdesk as helpdesk_service
from opsportal.services.ticket_visibility import (
    TicketFilters,
    all_tickets_view,
    assigned_view,
    closed_view,
    distinct_values,
    is_it_visible,
    ticket_stats,
    unassigned_view,
    visible_tickets,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/helpdesk", tags=["Helpdesk"])


def caller_name(db: Session, org_id: uuid.UUID, employee_id: str) -> Optional[str]:
    user = db.query(User).filter(User.org_id == org_id, User.employee_id == employee_id).first()
    return user.name if user else None


def get_ticket_or_404(db: Session, org_id: uuid.UUID, ticket_id: uuid.UUID) -> HelpdeskTicket:
    ticket = db.query(HelpdeskTicket).filter(
        HelpdeskTicket.id == ticket_id,
        HelpdeskTicket.org_id == org_id,
    ).first()
    if not ticket:
        raise HTTPException(404, "Ticket not found")
    return ticket


def _it_tickets(db: Session, org_id: uuid.UUID, role: str) -> list:
    tickets = db.query(HelpdeskTicket).filter(HelpdeskTicket.org_id == org_id).all()
    return visible_tickets(tickets, role)


# ── Requester ──


@router.post("/tickets", response_model=TicketOut, status_code=201)
def raise_ticket(
    body: TicketCreate,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    db: Session = Depends(get_db),
):
    name = body.user_name or caller_name(db, org_id, employee_id) or employee_id
    return helpdesk_service.create_ticket(
        db, org_id,
        module=body.module,
        sub_category=body.sub_category,
        subject=body.subject,
        description=body.description,
        urgency=body.urgency,
        user_id=employee_id,
        user_name=name,
        user_email=body.user_email,
    )


@router.get("/tickets/mine", response_model=list[TicketOut])
def my_tickets(
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    db: Session = Depends(get_db),
):
    return db.query(HelpdeskTicket).filter(
        HelpdeskTicket.org_id == org_id,
        HelpdeskTicket.user_id == employee_id,
    ).order_by(HelpdeskTicket.created_at.desc()).all()


# ── IT admin ──


@router.get("/it-admin/tickets", response_model=list[TicketOut])
def it_admin_tickets(
    view: str = Query("unassigned"),
    search: str = Query(""),
    statuses: list[str] = Query(default=[]),
    types: list[str] = Query(default=[]),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    age: str = Query("all"),
    sort: str = Query(""),
    direction: str = Query("asc"),
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(require_it_admin),
    db: Session = Depends(get_db),
):
    try:
        params = TicketViewParams(
            view=view, search=search, statuses=statuses, types=types,
            date_from=date_from, date_to=date_to, age=age, sort=sort, direction=direction,
        )
    except ValueError as e:
        raise HTTPException(400, f"Invalid ticket view parameters: {e}")

    tickets = _it_tickets(db, org_id, role)
    filters = TicketFilters(**params.model_dump(exclude={"view"}))
    if params.view == "unassigned":
        return unassigned_view(tickets, filters)
    if params.view == "assigned":
        return assigned_view(tickets, filters, employee_id, caller_name(db, org_id, employee_id))
    if params.view == "closed":
        return closed_view(tickets)
    return all_tickets_view(tickets, filters)


@router.get("/it-admin/stats", response_model=TicketStats)
def it_admin_stats(
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_it_admin),
    db: Session = Depends(get_db),
):
    return TicketStats(**ticket_stats(_it_tickets(db, org_id, role)))


@router.get("/it-admin/filters", response_model=TicketFilterOptions)
def it_admin_filter_options(
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_it_admin),
    db: Session = Depends(get_db),
):
    tickets = _it_tickets(db, org_id, role)
    return TicketFilterOptions(
        statuses=distinct_values(tickets, "status"),
        types=distinct_values(tickets, "sub_category"),
    )


@router.post("/tickets/{ticket_id}/assign", response_model=TicketOut)
def assign_ticket(
    ticket_id: uuid.UUID,
    body: AssignRequest,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(require_it_admin),
    db: Session = Depends(get_db),
):
    ticket = get_ticket_or_404(db, org_id, ticket_id)
    if not is_it_visible(ticket):
        raise HTTPException(409, "Ticket is not routed to IT or is still awaiting approval")
    return helpdesk_service.assign_ticket(
        db, ticket,
        employee_id=body.employee_id,
        employee_name=body.employee_name,
        assigned_by_id=employee_id,
        assigned_by_name=body.assigned_by_name or caller_name(db, org_id, employee_id) or employee_id,
        notes=body.notes,
    )


@router.put("/tickets/{ticket_id}/reassign", response_model=TicketOut)
def reassign_ticket(
    ticket_id: uuid.UUID,
    body: ReassignRequest,
    org_id: uuid.UUID = Depends(get_current_org_id),
    employee_id: str = Depends(get_current_employee_id),
    role: str = Depends(require_it_admin),
    db: Session = Depends(get_db),
):
    ticket = get_ticket_or_404(db, org_id, ticket_id)
    if not is_it_visible(ticket):
        raise HTTPException(409, "Ticket is not routed to IT or is still awaiting approval")
    try:
        return helpdesk_service.reassign_ticket(
            db, ticket,
            new_employee_id=body.new_employee_id,
            new_employee_name=body.new_employee_name,
            reassigned_by_id=employee_id,
            reassigned_by_name=body.reassigned_by_name or caller_name(db, org_id, employee_id) or employee_id,
            reason=body.reason,
        )
    except helpdesk_service.HelpdeskError as e:
        raise HTTPException(400, str(e))


@router.get("/specialists", response_model=list[SpecialistOut])
def list_specialists(
    org_id: uuid.UUID = Depends(get_current_org_id),
    role: str = Depends(require_it_admin),
    db: Session = Depends(get_db),
):
    return db.query(ITSpecialist).filter(
        ITSpecialist.org_id == org_id,
        ITSpecialist.is_active.is_(True),
    ).order_by(ITSpecialist.active_ticket_count, ITSpecialist.name).all()
