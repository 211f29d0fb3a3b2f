"""
Conversion between stored date entries and the weekly grid.

The database keeps one row per (employee, date, project, category); the API
and the workspaces speak TimesheetWeek. Everything here works on plain
attribute access so it can be fed ORM objects or simple namespaces.
"""

import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Iterable, Optional

from opsportal.schemas.timesheet import DAYS_IN_WEEK, EntryMeta, TimesheetRow, TimesheetWeek
from opsportal.services.timesheet_rules import has_hours, parse_time_to_minutes

logger = logging.getLogger(__name__)

ROW_FIELDS = (
    "project_id", "project_code", "project_name", "uda_id", "uda_name",
    "type", "financial_line_item", "billable",
)


def hours_to_decimal(value: Optional[str]) -> float:
    """Convert "07:30" to 7.5. Plain decimals ("7.5") from legacy rows also parse."""
    if not has_hours(value):
        return 0.0
    minutes = parse_time_to_minutes(value)
    if minutes is not None:
        return minutes / 60
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def calculate_total_hours(rows: Iterable[TimesheetRow]) -> float:
    total = sum(hours_to_decimal(h) for row in rows for h in row.hours)
    return round(total, 2)


def determine_overall_status(statuses: Iterable[str]) -> str:
    statuses = list(statuses)
    if not statuses:
        return "draft"
    if any(s == "rejected" for s in statuses):
        return "rejected"
    if all(s == "approved" for s in statuses):
        return "approved"
    if all(s == "draft" for s in statuses):
        return "draft"
    return "submitted"


def entries_to_week(
    entries: Iterable,
    employee_id: str,
    employee_name: str,
    week_start: date,
) -> Optional[TimesheetWeek]:
    """Group stored entries of one week into grid rows. No entries -> None."""
    entries = list(entries)
    if not entries:
        return None

    grouped: "OrderedDict[tuple, dict]" = OrderedDict()
    for e in sorted(entries, key=lambda x: (x.project_id, x.uda_id, x.date)):
        index = (e.date - week_start).days
        if index < 0 or index >= DAYS_IN_WEEK:
            logger.warning("Entry %s dated %s is outside week %s", e.id, e.date, week_start)
            continue

        key = (e.project_id, e.uda_id)
        if key not in grouped:
            grouped[key] = {
                **{f: getattr(e, f) for f in ROW_FIELDS},
                "hours": [None] * DAYS_IN_WEEK,
                "comments": [None] * DAYS_IN_WEEK,
                "entry_meta": [None] * DAYS_IN_WEEK,
            }
        row = grouped[key]
        row["hours"][index] = e.hours
        row["comments"][index] = e.comment
        row["entry_meta"][index] = EntryMeta(
            approval_status=e.approval_status,
            rejected_reason=e.rejected_reason,
            date=e.date.isoformat(),
            entry_id=e.id,
        )

    rows = [TimesheetRow(**data) for data in grouped.values()]
    submitted = [e.submitted_at for e in entries if e.submitted_at]
    return TimesheetWeek(
        employee_id=employee_id,
        employee_name=employee_name or entries[0].employee_name,
        week_start_date=week_start,
        week_end_date=week_start + timedelta(days=DAYS_IN_WEEK - 1),
        rows=rows,
        status=determine_overall_status(e.status for e in entries),
        total_hours=calculate_total_hours(rows),
        submitted_at=max(submitted) if submitted else None,
    )


def week_to_entry_values(week: TimesheetWeek) -> list[dict]:
    """Flatten a week into one dict per non-empty cell, ready for an upsert."""
    values = []
    for row in week.rows:
        for i, hours in enumerate(row.hours):
            if not has_hours(hours):
                continue
            values.append({
                **{f: getattr(row, f) for f in ROW_FIELDS},
                "employee_id": week.employee_id,
                "employee_name": week.employee_name,
                "date": week.week_start_date + timedelta(days=i),
                "hours": hours,
                "comment": row.comments[i] or None,
            })
    return values
