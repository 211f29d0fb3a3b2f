"""Timesheet entries router: weekly grid, draft/submit, row deletion, approvals."""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import (
    MANAGER_ROLES,
    get_current_employee_id,
    get_current_org_id,
    get_current_role,
    require_manager,
)
from opsportal.models.project import Project
from opsportal.models.timesheet import TimesheetEntry
from opsportal.schemas.timesheet import (
    DAYS_IN_WEEK,
    ApproveCell,
    ApproveWeekRequest,
    BulkApproveDaysRequest,
    DayApprovalResponse,
    DeleteRowResponse,
    EntryMeta,
    ReminderRequest,
    RevisionRequest,
    TimesheetEntryResponse,
    TimesheetWeek,
    UpdatedCountResponse,
    WeeklySummary,
    WeekSaveResponse,
)
from opsportal.services.audit import log_action
from opsportal.services.notifications import ROLE_EMPLOYEE, ROLE_MANAGER, notify
from opsportal.services.timesheet_rules import (
    RowLocked,
    TimesheetRuleError,
    ensure_row_deletable,
    has_hours,
    validate_submission,
)
from opsportal.services.timesheet_transform import (
    calculate_total_hours,
    entries_to_week,
    hours_to_decimal,
    week_to_entry_values,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/timesheet-entries", tags=["Timesheet Entries"])


# ── helpers ──


def _monday_or_400(d: date) -> date:
    if d.weekday() != 0:
        raise HTTPException(400, "week_start_date must be a Monday")
    return d


def _rule_error(e: TimesheetRuleError) -> HTTPException:
    return HTTPException(409 if isinstance(e, RowLocked) else 400, str(e))


def _ensure_self_or_manager(employee_id: str, caller_employee_id: str, role: str) -> None:
    if employee_id != caller_employee_id and role not in MANAGER_ROLES:
        raise HTTPException(403, "You can only access your own timesheet")


def _ensure_acting_manager(manager_id: str, caller_employee_id: str, role: str) -> None:
    if role != "super_admin" and manager_id != caller_employee_id:
        raise HTTPException(403, "manager_id does not match the signed-in manager")


def _week_entries(db: Session, org_id: uuid.UUID, employee_id: str, week_start: date):
    return db.query(TimesheetEntry).filter(
        TimesheetEntry.org_id == org_id,
        TimesheetEntry.employee_id == employee_id,
        TimesheetEntry.date >= week_start,
        TimesheetEntry.date <= week_start + timedelta(days=DAYS_IN_WEEK - 1),
    )


def _check_project_manager(db: Session, org_id: uuid.UUID, project_id: str, manager_id: str, role: str) -> None:
    if project_id == "all":
        return
    project = db.query(Project).filter(
        Project.org_id == org_id,
        Project.project_id == project_id,
    ).first()
    if not project:
        logger.warning("Project %s not registered; approving on behalf of %s anyway", project_id, manager_id)
        return
    if role != "super_admin" and project.manager_employee_id != manager_id:
        raise HTTPException(403, "You do not manage this project")


def _approval_scope(db: Session, org_id: uuid.UUID, body: ApproveWeekRequest):
    q = _week_entries(db, org_id, body.employee_id, body.week_start_date).filter(
        TimesheetEntry.status != "draft",
    )
    if body.project_id != "all":
        q = q.filter(TimesheetEntry.project_id == body.project_id)
    return q


def _save_week(
    db: Session,
    org_id: uuid.UUID,
    week: TimesheetWeek,
    status: str,
) -> tuple[int, list[str]]:
    """Write the week's cells. Returns (entries written, project ids touched).

    Stored approved cells are never overwritten; stored non-approved cells
    missing from the payload were cleared by the employee and are removed.
    """
    stored = {
        (e.date, e.project_id, e.uda_id): e
        for e in _week_entries(db, org_id, week.employee_id, week.week_start_date).all()
    }
    now = datetime.now(timezone.utc)
    written = 0
    seen = set()
    projects = []

    for values in week_to_entry_values(week):
        key = (values["date"], values["project_id"], values["uda_id"])
        seen.add(key)
        entry = stored.get(key)
        if entry is not None and entry.approval_status == "approved":
            continue

        if entry is None:
            entry = TimesheetEntry(org_id=org_id, approval_status="pending", **values)
            db.add(entry)
        else:
            for field, val in values.items():
                setattr(entry, field, val)

        entry.status = status
        if status == "submitted":
            entry.submitted_at = now
            entry.approval_status = "pending"
            entry.rejected_reason = None
        written += 1
        if values["project_id"] not in projects:
            projects.append(values["project_id"])

    for key, entry in stored.items():
        if key not in seen and entry.approval_status != "approved":
            db.delete(entry)

    return written, projects


def _with_stored_approvals(db: Session, org_id: uuid.UUID, week: TimesheetWeek) -> TimesheetWeek:
    """Mark the payload cells that are already approved in storage."""
    approved = {
        (e.date, e.project_id, e.uda_id)
        for e in _week_entries(db, org_id, week.employee_id, week.week_start_date).filter(
            TimesheetEntry.approval_status == "approved",
        ).all()
    }
    if not approved:
        return week
    rows = []
    for row in week.rows:
        meta = list(row.entry_meta)
        for i in range(DAYS_IN_WEEK):
            day = week.week_start_date + timedelta(days=i)
            if (day, row.project_id, row.uda_id) in approved:
                meta[i] = EntryMeta(approval_status="approved", date=day.isoformat())
        rows.append(row.model_copy(update={"entry_meta": meta}))
    return week.model_copy(update={"rows": rows})


# ── employee week ──


@router.get("/week/{employee_id}/{week_start}", response_model=Optional[TimesheetWeek])
def get_week(
    employee_id: str,
    week_start: date,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    _monday_or_400(week_start)
    _ensure_self_or_manager(employee_id, caller, role)
    entries = _week_entries(db, org_id, employee_id, week_start).order_by(TimesheetEntry.date).all()
    return entries_to_week(entries, employee_id, "", week_start)


@router.post("/draft", response_model=WeekSaveResponse)
def save_draft(
    body: TimesheetWeek,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    _ensure_self_or_manager(body.employee_id, caller, role)
    written, _ = _save_week(db, org_id, body, "draft")
    db.commit()
    logger.info("Draft saved for %s week %s: %d entries", body.employee_id, body.week_start_date, written)
    return WeekSaveResponse(
        employee_id=body.employee_id,
        week_start_date=body.week_start_date,
        status="draft",
        total_hours=calculate_total_hours(body.rows),
        entries_written=written,
        message=f"Saved {written} draft entries",
    )


@router.post("/submit", response_model=WeekSaveResponse, status_code=201)
def submit_week(
    body: TimesheetWeek,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    _ensure_self_or_manager(body.employee_id, caller, role)
    checked = _with_stored_approvals(db, org_id, body)
    try:
        validate_submission(checked.rows, body.week_start_date)
    except TimesheetRuleError as e:
        raise _rule_error(e)

    written, projects = _save_week(db, org_id, body, "submitted")
    db.commit()
    logger.info("Submitted %d entries for %s week %s", written, body.employee_id, body.week_start_date)

    managers = db.query(Project).filter(
        Project.org_id == org_id,
        Project.project_id.in_(projects),
        Project.manager_employee_id.isnot(None),
    ).all()
    for project in managers:
        notify(
            db, org_id, project.manager_employee_id, ROLE_MANAGER, "approval",
            "Timesheet submitted",
            f"{body.employee_name} submitted timesheet for week {body.week_start_date} ({project.project_name})",
            {"employee_id": body.employee_id, "project_id": project.project_id,
             "week_start_date": body.week_start_date.isoformat()},
        )

    return WeekSaveResponse(
        employee_id=body.employee_id,
        week_start_date=body.week_start_date,
        status="submitted",
        total_hours=calculate_total_hours(body.rows),
        entries_written=written,
        message=f"Successfully submitted {written} timesheet entries",
    )


@router.delete("/row/{employee_id}/{week_start}/{project_id}/{uda_id}", response_model=DeleteRowResponse)
def delete_row(
    employee_id: str,
    week_start: date,
    project_id: str,
    uda_id: str,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    _monday_or_400(week_start)
    _ensure_self_or_manager(employee_id, caller, role)
    week_entries = _week_entries(db, org_id, employee_id, week_start).all()
    week = entries_to_week(week_entries, employee_id, "", week_start)
    row_entries = [e for e in week_entries if e.project_id == project_id and e.uda_id == uda_id]

    if week is not None:
        row = next((r for r in week.rows if r.project_id == project_id and r.uda_id == uda_id), None)
        if row is not None:
            try:
                ensure_row_deletable(row, week.status)
            except TimesheetRuleError as e:
                raise _rule_error(e)

    for e in row_entries:
        db.delete(e)
    log_action(db, org_id, caller, "timesheet.delete_row", "timesheet_row", f"{project_id}|{uda_id}",
               {"employee_id": employee_id, "week_start_date": week_start.isoformat(),
                "deleted_count": len(row_entries)}, commit=False)
    db.commit()
    logger.info("Deleted %d entries for %s %s|%s week %s", len(row_entries), employee_id, project_id, uda_id, week_start)
    return DeleteRowResponse(message="Row deleted successfully", deleted_count=len(row_entries))


@router.get("/date-range/{employee_id}/{start}/{end}", response_model=list[TimesheetEntryResponse])
def entries_in_range(
    employee_id: str,
    start: date,
    end: date,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    if end < start:
        raise HTTPException(400, "end must not be before start")
    _ensure_self_or_manager(employee_id, caller, role)
    return db.query(TimesheetEntry).filter(
        TimesheetEntry.org_id == org_id,
        TimesheetEntry.employee_id == employee_id,
        TimesheetEntry.date >= start,
        TimesheetEntry.date <= end,
    ).order_by(TimesheetEntry.date, TimesheetEntry.created_at).all()


@router.get("/summary/{employee_id}/{week_start}", response_model=WeeklySummary)
def weekly_summary(
    employee_id: str,
    week_start: date,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(get_current_role),
    db: Session = Depends(get_db),
):
    _monday_or_400(week_start)
    _ensure_self_or_manager(employee_id, caller, role)
    entries = _week_entries(db, org_id, employee_id, week_start).all()
    by_day = {}
    statuses = {}
    for e in entries:
        ds = e.date.isoformat()
        by_day[ds] = round(by_day.get(ds, 0) + hours_to_decimal(e.hours), 2)
        statuses[e.approval_status] = statuses.get(e.approval_status, 0) + 1
    return WeeklySummary(
        week_start_date=week_start,
        total_hours=round(sum(by_day.values()), 2),
        by_day=by_day,
        statuses=statuses,
        entries=len(entries),
    )


# ── Approvals (manager) ──


@router.get("/approvals", response_model=Optional[TimesheetWeek])
def approver_timesheet(
    manager_id: str = Query(...),
    employee_id: str = Query(...),
    week_start_date: date = Query(...),
    project_id: str = Query("all"),
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    _monday_or_400(week_start_date)
    _ensure_acting_manager(manager_id, caller, role)
    _check_project_manager(db, org_id, project_id, manager_id, role)
    scope = ApproveWeekRequest(
        manager_id=manager_id, project_id=project_id,
        employee_id=employee_id, week_start_date=week_start_date,
    )
    entries = _approval_scope(db, org_id, scope).order_by(TimesheetEntry.date).all()
    return entries_to_week(entries, employee_id, "", week_start_date)


def _approve(
    db: Session,
    org_id: uuid.UUID,
    body: ApproveWeekRequest,
    days: Optional[list[int]],
    cells: Optional[list[ApproveCell]] = None,
) -> list[TimesheetEntry]:
    q = _approval_scope(db, org_id, body).filter(TimesheetEntry.approval_status == "pending")
    if days is not None:
        dates = [body.week_start_date + timedelta(days=i) for i in days]
        q = q.filter(TimesheetEntry.date.in_(dates))
    wanted = {(c.day_index, c.uda_id, c.project_id) for c in cells or []}
    now = datetime.now(timezone.utc)
    approved = []
    for e in q.all():
        if not has_hours(e.hours):
            continue
        if wanted:
            day = (e.date - body.week_start_date).days
            if (day, e.uda_id, e.project_id) not in wanted and (day, e.uda_id, None) not in wanted:
                continue
        e.approval_status = "approved"
        e.status = "approved"
        e.approved_by = body.manager_id
        e.approved_at = now
        e.rejected_reason = None
        approved.append(e)
    return approved


@router.put("/approvals/approve-week", response_model=UpdatedCountResponse)
def approve_week(
    body: ApproveWeekRequest,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    _monday_or_400(body.week_start_date)
    _ensure_acting_manager(body.manager_id, caller, role)
    _check_project_manager(db, org_id, body.project_id, body.manager_id, role)
    count = len(_approve(db, org_id, body, None))
    log_action(db, org_id, body.manager_id, "timesheet.approve_week", "timesheet_week",
               f"{body.employee_id}:{body.week_start_date}",
               {"project_id": body.project_id, "updated_count": count}, commit=False)
    db.commit()
    logger.info("Approved %d entries for %s week %s", count, body.employee_id, body.week_start_date)
    return UpdatedCountResponse(updated_count=count)


@router.put("/approvals/bulk-approve-days", response_model=DayApprovalResponse)
def bulk_approve_days(
    body: BulkApproveDaysRequest,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    _monday_or_400(body.week_start_date)
    _ensure_acting_manager(body.manager_id, caller, role)
    _check_project_manager(db, org_id, body.project_id, body.manager_id, role)
    approved = _approve(db, org_id, body, body.day_indices, body.cells)
    days = sorted({(e.date - body.week_start_date).days for e in approved})
    log_action(db, org_id, body.manager_id, "timesheet.approve_days", "timesheet_week",
               f"{body.employee_id}:{body.week_start_date}",
               {"project_id": body.project_id, "day_indices": body.day_indices,
                "cells": [c.model_dump() for c in body.cells], "updated_count": len(approved)},
               commit=False)
    db.commit()
    logger.info("Approved %d entries for %s days %s", len(approved), body.employee_id, days)
    return DayApprovalResponse(updated_count=len(approved), day_indices=days)


@router.put("/approvals/revision-request", response_model=UpdatedCountResponse)
def request_revision(
    body: RevisionRequest,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    _monday_or_400(body.week_start_date)
    _ensure_acting_manager(body.manager_id, caller, role)
    _check_project_manager(db, org_id, body.project_id, body.manager_id, role)

    count = 0
    for item in body.reverts:
        reason = item.reason.strip()
        if not reason:
            raise HTTPException(400, "A reason is required to request a revision")
        day = body.week_start_date + timedelta(days=item.day_index)
        entries = _approval_scope(db, org_id, body).filter(
            TimesheetEntry.date == day,
            TimesheetEntry.uda_id == item.uda_id,
            TimesheetEntry.approval_status.in_(("pending", "revision_requested")),
        ).all()
        for e in entries:
            e.approval_status = "revision_requested"
            e.status = "rejected"
            e.rejected_reason = reason
            e.approved_by = body.manager_id
            count += 1

    log_action(db, org_id, body.manager_id, "timesheet.revision_request", "timesheet_week",
               f"{body.employee_id}:{body.week_start_date}",
               {"project_id": body.project_id, "reverts": [r.model_dump() for r in body.reverts],
                "updated_count": count}, commit=False)
    db.commit()
    logger.info("Revision requested on %d entries for %s week %s", count, body.employee_id, body.week_start_date)

    if count:
        notify(
            db, org_id, body.employee_id, ROLE_EMPLOYEE, "rejection",
            "Timesheet revision requested",
            f"Your manager requested changes to {count} entr{'y' if count == 1 else 'ies'} "
            f"for week {body.week_start_date}",
            {"manager_id": body.manager_id, "week_start_date": body.week_start_date.isoformat()},
        )
    return UpdatedCountResponse(updated_count=count)


@router.get("/pending-approval", response_model=list[TimesheetEntryResponse])
def pending_approval(
    limit: int = Query(default=100, ge=1, le=500),
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    q = db.query(TimesheetEntry).filter(
        TimesheetEntry.org_id == org_id,
        TimesheetEntry.status == "submitted",
        TimesheetEntry.approval_status == "pending",
    )
    if role != "super_admin":
        managed = [
            pid for (pid,) in db.query(Project.project_id).filter(
                Project.org_id == org_id,
                Project.manager_employee_id == caller,
            ).all()
        ]
        q = q.filter(TimesheetEntry.project_id.in_(managed))
    return q.order_by(TimesheetEntry.submitted_at.desc()).limit(limit).all()


@router.post("/send-reminder", status_code=201)
def send_reminder(
    body: ReminderRequest,
    org_id: uuid.UUID = Depends(get_current_org_id),
    caller: str = Depends(get_current_employee_id),
    role: str = Depends(require_manager),
    db: Session = Depends(get_db),
):
    _ensure_acting_manager(body.manager_id, caller, role)
    week_end = body.week_end_date or body.week_start_date + timedelta(days=DAYS_IN_WEEK - 1)
    note = notify(
        db, org_id, body.employee_id, ROLE_EMPLOYEE, "reminder",
        "Timesheet Reminder",
        f"Please submit your timesheet for week {body.week_start_date} - {week_end} "
        f"for {body.project_name or 'project'}. Reminder from {body.manager_name or body.manager_id}.",
        {"manager_id": body.manager_id, "project_id": body.project_id,
         "week_start_date": body.week_start_date.isoformat(), "week_end_date": week_end.isoformat()},
    )
    if note is None:
        raise HTTPException(500, "Failed to send reminder")
    return {
        "success": True,
        "message": f"Reminder sent to {body.employee_name or body.employee_id}",
        "notification_id": str(note.id),
    }
