"""
Timesheet day-cell rules.

A week is seven cells per row (index 0 = Monday). Each cell holds an hours
value ("HH:MM") and, once it has been sent for approval, an approval record:

    empty -> pending -> approved | revision_requested
    revision_requested -> pending      (employee re-submits)

Approved cells are frozen for the employee. Nothing in here touches the
database or the network: routers and the client workspaces both call into
these helpers so the two sides agree on what is allowed.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from opsportal.schemas.timesheet import DAYS_IN_WEEK, TimesheetRow, TimesheetWeek

logger = logging.getLogger(__name__)

MIN_DAILY_MINUTES = 8 * 60
EMPTY_HOURS = ("", "0", "00:00", "0:00")

_TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")
_HOURS_ONLY = re.compile(r"^\d{1,2}$")
_LOOSE_TIME = re.compile(r"^\d{1,2}:\d{1,2}$")


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class TimesheetRuleError(ValueError):
    """Base class for rule violations. Nothing has been sent when one is raised."""


class InvalidTimeFormat(TimesheetRuleError):
    pass


class DayLocked(TimesheetRuleError):
    pass


class RowLocked(TimesheetRuleError):
    pass


class NothingToSubmit(TimesheetRuleError):
    pass


@dataclass(frozen=True)
class ShortDay:
    day_index: int
    day: date
    total_minutes: int

    @property
    def day_name(self) -> str:
        return self.day.strftime("%A")

    @property
    def label(self) -> str:
        return f"{self.day_name} ({self.day.strftime('%b %d')}): {format_minutes(self.total_minutes)}"


class ShortDaysError(TimesheetRuleError):
    def __init__(self, short_days: list[ShortDay]):
        self.short_days = short_days
        listed = ", ".join(d.label for d in short_days)
        super().__init__(f"Each working day must have at least 8 hours. Days with less than 8 hours: {listed}")


# ──────────────────────────────────────────────
# Time values
# ──────────────────────────────────────────────

def normalize_time_input(raw: Optional[str]) -> Optional[str]:
    """Turn user input into "HH:MM". Blank means "00:00"; None means unparseable."""
    value = (raw or "").strip()
    if not value:
        return "00:00"

    if _HOURS_ONLY.match(value):
        hours, minutes = int(value), 0
    elif _LOOSE_TIME.match(value):
        h, m = value.split(":")
        hours, minutes = int(h), int(m)
    else:
        return None

    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    if not value or not _TIME_PATTERN.match(value):
        return None
    hours, minutes = (int(p) for p in value.split(":"))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    clamped = max(0, min(minutes, 23 * 60 + 59))
    return f"{clamped // 60:02d}:{clamped % 60:02d}"


def has_hours(value: Optional[str]) -> bool:
    return bool(value) and value.strip() not in EMPTY_HOURS


def minutes_of(value: Optional[str]) -> int:
    if not has_hours(value):
        return 0
    return parse_time_to_minutes(value) or 0


# ──────────────────────────────────────────────
# Calendar
# ──────────────────────────────────────────────

def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_days(week_start: date) -> list[date]:
    return [week_start + timedelta(days=i) for i in range(DAYS_IN_WEEK)]


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


@dataclass(frozen=True)
class DayGate:
    """Read-only editability predicate for the cells of one project row."""

    today: date
    project_end: Optional[date] = None
    allocation_end: Optional[date] = None

    def is_locked(self, day: date) -> bool:
        if self.project_end and day > self.project_end:
            return True
        if self.allocation_end and day > self.allocation_end:
            return True
        return day > self.today


# ──────────────────────────────────────────────
# Cell state
# ──────────────────────────────────────────────

def day_status(row: TimesheetRow, day_index: int) -> Optional[str]:
    meta = row.entry_meta[day_index]
    return meta.approval_status if meta else None


def is_day_approved(row: TimesheetRow, day_index: int) -> bool:
    return day_status(row, day_index) == "approved"


def is_pending_cell(row: TimesheetRow, day_index: int) -> bool:
    return has_hours(row.hours[day_index]) and day_status(row, day_index) == "pending"


def pending_day_indices(row: TimesheetRow) -> list[int]:
    return [i for i in range(DAYS_IN_WEEK) if is_pending_cell(row, i)]


def row_has_approved_day(row: TimesheetRow) -> bool:
    return any(is_day_approved(row, i) for i in range(DAYS_IN_WEEK))


def any_approved(rows: Iterable[TimesheetRow]) -> bool:
    return any(row_has_approved_day(r) for r in rows)


def set_hours(row: TimesheetRow, day_index: int, raw_value: Optional[str]) -> TimesheetRow:
    """Return a copy of row with one cell changed.

    Approved cells raise DayLocked; unparseable input raises InvalidTimeFormat
    and leaves the row untouched. Clearing a cell drops its approval record.
    """
    if is_day_approved(row, day_index):
        raise DayLocked("Approved hours cannot be edited")

    normalized = normalize_time_input(raw_value)
    if normalized is None or parse_time_to_minutes(normalized) is None:
        raise InvalidTimeFormat("Use HH:mm format")

    hours = list(row.hours)
    hours[day_index] = normalized
    meta = list(row.entry_meta)
    if not has_hours(normalized):
        meta[day_index] = None
    return row.model_copy(update={"hours": hours, "entry_meta": meta})


def set_comment(row: TimesheetRow, day_index: int, text: Optional[str]) -> TimesheetRow:
    if is_day_approved(row, day_index):
        raise DayLocked("Approved entries cannot be edited")
    comments = list(row.comments)
    comments[day_index] = text or None
    return row.model_copy(update={"comments": comments})


# ──────────────────────────────────────────────
# Copy forward
# ──────────────────────────────────────────────

def _copy_target_ok(day: date, holidays: set, project_end: Optional[date], today: Optional[date]) -> bool:
    if is_weekend(day) or day in holidays:
        return False
    if project_end and day > project_end:
        return False
    if today and day > today:
        return False
    return True


def copy_hours_forward(
    row: TimesheetRow,
    source_index: int,
    week_start: date,
    *,
    holidays: Iterable[date] = (),
    project_end: Optional[date] = None,
    today: Optional[date] = None,
) -> tuple[TimesheetRow, int]:
    """Copy one cell to every later eligible day of the same row.

    An empty source is a silent no-op. Returns (row, number of days written).
    """
    source = row.hours[source_index]
    if not has_hours(source):
        return row, 0

    holidays = set(holidays)
    days = week_days(week_start)
    hours = list(row.hours)
    copied = 0
    for i in range(source_index + 1, DAYS_IN_WEEK):
        if is_day_approved(row, i):
            continue
        if not _copy_target_ok(days[i], holidays, project_end, today):
            continue
        hours[i] = source
        copied += 1

    if not copied:
        return row, 0
    return row.model_copy(update={"hours": hours}), copied


def copy_project_day_hours(
    rows: list[TimesheetRow],
    project_id: str,
    source_index: int,
    week_start: date,
    *,
    holidays: Iterable[date] = (),
    project_end: Optional[date] = None,
    today: Optional[date] = None,
) -> tuple[list[TimesheetRow], int]:
    """Copy a day's hours and comments forward for every category of a project.

    Returns the new rows and the number of distinct days that received data.
    """
    holidays = set(holidays)
    days = week_days(week_start)
    touched_days: set[int] = set()
    result = []

    for row in rows:
        source = row.hours[source_index]
        if row.project_id != project_id or not has_hours(source):
            result.append(row)
            continue

        hours = list(row.hours)
        comments = list(row.comments)
        for i in range(source_index + 1, DAYS_IN_WEEK):
            if is_day_approved(row, i):
                continue
            if not _copy_target_ok(days[i], holidays, project_end, today):
                continue
            hours[i] = source
            comments[i] = row.comments[source_index]
            touched_days.add(i)
        result.append(row.model_copy(update={"hours": hours, "comments": comments}))

    return result, len(touched_days)


# ──────────────────────────────────────────────
# Delete row
# ──────────────────────────────────────────────

def ensure_row_deletable(row: TimesheetRow, week_status: Optional[str]) -> None:
    if week_status == "approved":
        raise RowLocked("Cannot delete rows from an approved timesheet")
    if row_has_approved_day(row):
        raise RowLocked("Cannot delete a row with approved entries")


# ──────────────────────────────────────────────
# Draft / submit
# ──────────────────────────────────────────────

def has_non_approved_hours(rows: Iterable[TimesheetRow]) -> bool:
    return any(
        has_hours(h) and not is_day_approved(row, i)
        for row in rows
        for i, h in enumerate(row.hours)
    )


def find_short_days(
    rows: Iterable[TimesheetRow],
    week_start: date,
    min_minutes: int = MIN_DAILY_MINUTES,
) -> list[ShortDay]:
    """Days with non-approved hours whose non-approved total is under min_minutes.

    Approved hours neither count towards the total nor make a day subject
    to the check.
    """
    totals = [0] * DAYS_IN_WEEK
    filled = [False] * DAYS_IN_WEEK
    for row in rows:
        for i, h in enumerate(row.hours):
            if is_day_approved(row, i) or not has_hours(h):
                continue
            filled[i] = True
            totals[i] += parse_time_to_minutes(h) or 0

    days = week_days(week_start)
    return [
        ShortDay(day_index=i, day=days[i], total_minutes=totals[i])
        for i in range(DAYS_IN_WEEK)
        if filled[i] and totals[i] < min_minutes
    ]


def validate_submission(rows: list[TimesheetRow], week_start: date) -> None:
    if not rows:
        raise NothingToSubmit("Cannot submit empty timesheet")
    if not has_non_approved_hours(rows):
        raise NothingToSubmit("No non-approved entries to submit")
    short = find_short_days(rows, week_start)
    if short:
        raise ShortDaysError(short)


def outgoing_rows(rows: Iterable[TimesheetRow]) -> list[TimesheetRow]:
    """Rows as they go over the wire: approved cells blanked, empty rows dropped."""
    prepared = []
    for row in rows:
        hours = ["00:00" if is_day_approved(row, i) else h for i, h in enumerate(row.hours)]
        comments = ["" if is_day_approved(row, i) else c for i, c in enumerate(row.comments)]
        if not any(has_hours(h) for h in hours):
            continue
        prepared.append(row.model_copy(update={
            "hours": hours,
            "comments": comments,
            "entry_meta": [None] * DAYS_IN_WEEK,
        }))
    return prepared


def build_week_payload(week: TimesheetWeek, status: str) -> TimesheetWeek:
    return week.model_copy(update={
        "rows": outgoing_rows(week.rows),
        "status": status,
        "week_end_date": week.week_start_date + timedelta(days=DAYS_IN_WEEK - 1),
        "total_hours": 0,
    })


def status_after_draft(rows: Iterable[TimesheetRow], current: Optional[str]) -> Optional[str]:
    """Local week status after a successful draft save."""
    return current if any_approved(rows) else "draft"
