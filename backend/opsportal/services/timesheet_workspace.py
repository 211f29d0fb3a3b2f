"""
Employee-side week editor.

Holds one employee's week in memory, applies the day-cell rules locally and
talks to the backend through a TimesheetGateway. Hours and comments are
edited locally before anything is sent; approval state is only ever taken
from the backend (every save, submit or delete reloads the week).

Every action returns an ActionResult, the message a user would see. Backend
failures are logged and reported, never raised.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from opsportal.schemas.timesheet import DAYS_IN_WEEK, TimesheetRow, TimesheetWeek
from opsportal.services import timesheet_rules as rules
from opsportal.services.timesheet_gateway import GatewayError, TimesheetGateway
from opsportal.services.timesheet_transform import calculate_total_hours

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    message: str = ""
    level: str = "success"  # success | info | warning | error

    @classmethod
    def success(cls, message: str = "") -> "ActionResult":
        return cls(True, message, "success")

    @classmethod
    def info(cls, message: str) -> "ActionResult":
        return cls(True, message, "info")

    @classmethod
    def error(cls, message: str) -> "ActionResult":
        return cls(False, message, "error")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _earliest(*dates: Optional[date]) -> Optional[date]:
    present = [d for d in dates if d]
    return min(present) if present else None


class EmployeeWeekWorkspace:
    def __init__(
        self,
        gateway: TimesheetGateway,
        employee_id: str,
        employee_name: str,
        today: Optional[date] = None,
    ):
        self.gateway = gateway
        self.employee_id = employee_id
        self.employee_name = employee_name
        self.today = today or date.today()

        self.week_start = rules.monday_of(self.today)
        self.rows: list[TimesheetRow] = []
        self.status: Optional[str] = None
        self.cell_errors: dict[tuple[str, int], str] = {}
        self.holidays: set[date] = set()
        self.project_ends: dict[str, Optional[date]] = {}
        self.allocation_ends: dict[str, Optional[date]] = {}
        self.loading = False
        self._generation = 0

    # ── loading ──

    def begin_load(self, week_start: date) -> int:
        """Switch to a week and return the token its response must present."""
        self._generation += 1
        self.week_start = rules.monday_of(week_start)
        self.loading = True
        self.cell_errors = {}
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def apply_loaded(
        self,
        generation: int,
        week: Optional[TimesheetWeek],
        holidays: Optional[list[date]] = None,
        allocations: Optional[list[dict]] = None,
        projects: Optional[list[dict]] = None,
    ) -> bool:
        """Install a loaded week. Responses for a superseded load are dropped."""
        if not self.is_current(generation):
            logger.warning(
                "Discarding stale timesheet response for %s (load %d, current %d)",
                self.employee_id, generation, self._generation,
            )
            return False

        if week is not None and week.week_start_date != self.week_start:
            logger.warning("Got week %s while showing %s; ignored", week.week_start_date, self.week_start)
            week = None

        self.rows = list(week.rows) if week else []
        self.status = week.status if week else None
        if holidays is not None:
            self.holidays = set(holidays)
        if allocations is not None:
            self.allocation_ends = self._allocation_ends(allocations)
        if projects is not None:
            self.project_ends = {
                p["project_id"]: date.fromisoformat(p["project_end_date"]) if p.get("project_end_date") else None
                for p in projects
            }
        self.loading = False
        return True

    @staticmethod
    def _allocation_ends(allocations: list[dict]) -> dict[str, Optional[date]]:
        ends: dict[str, Optional[date]] = {}
        for a in allocations:
            pid = a["project_id"]
            end = date.fromisoformat(a["end_date"]) if a.get("end_date") else None
            if pid in ends and (ends[pid] is None or end is None):
                ends[pid] = None  # an open-ended allocation wins
            elif pid in ends:
                ends[pid] = max(ends[pid], end)
            else:
                ends[pid] = end
        return ends

    def load_week(self, week_start: Optional[date] = None) -> ActionResult:
        generation = self.begin_load(week_start or self.week_start)
        week_end = self.week_start + timedelta(days=DAYS_IN_WEEK - 1)
        try:
            week = self.gateway.get_week(self.employee_id, self.week_start)
            holidays = self.gateway.holidays(self.week_start, week_end)
            allocations = self.gateway.allocations(self.employee_id)
            projects = self.gateway.projects()
        except GatewayError as e:
            logger.error("Loading week %s for %s failed: %s", self.week_start, self.employee_id, e)
            if self.is_current(generation):
                self.loading = False
            return ActionResult.error(e.message or "Failed to load timesheet")

        if not self.apply_loaded(generation, week, holidays, allocations, projects):
            return ActionResult(False, "Week changed while loading; response discarded", "info")
        return ActionResult.success()

    def change_week(self, weeks: int) -> ActionResult:
        return self.load_week(self.week_start + timedelta(weeks=weeks))

    # ── queries ──

    @property
    def days(self) -> list[date]:
        return rules.week_days(self.week_start)

    @property
    def total_hours(self) -> float:
        return calculate_total_hours(self.rows)

    def find_row(self, row_key: str) -> Optional[TimesheetRow]:
        return next((r for r in self.rows if r.key == row_key), None)

    def gate(self, project_id: str) -> rules.DayGate:
        return rules.DayGate(
            today=self.today,
            project_end=self.project_ends.get(project_id),
            allocation_end=self.allocation_ends.get(project_id),
        )

    def is_day_editable(self, row_key: str, day_index: int) -> bool:
        row = self.find_row(row_key)
        if row is None or rules.is_day_approved(row, day_index):
            return False
        return not self.gate(row.project_id).is_locked(self.days[day_index])

    def snapshot(self) -> TimesheetWeek:
        return TimesheetWeek(
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            week_start_date=self.week_start,
            week_end_date=self.week_start + timedelta(days=DAYS_IN_WEEK - 1),
            rows=list(self.rows),
            status=self.status,
            total_hours=self.total_hours,
        )

    def _replace_row(self, row: TimesheetRow) -> None:
        self.rows = [row if r.key == row.key else r for r in self.rows]

    # ── editing ──

    def add_row(self, row: TimesheetRow) -> ActionResult:
        if self.find_row(row.key) is not None:
            label = row.project_name or row.project_id
            return ActionResult.error(f"{label} / {row.uda_name} already exists in your timesheet")
        self.rows = [*self.rows, row]
        return ActionResult.success("Assignment added")

    def set_hours(self, row_key: str, day_index: int, value: Optional[str]) -> ActionResult:
        row = self.find_row(row_key)
        if row is None:
            return ActionResult.error("Row not found")
        cell = (row_key, day_index)
        if not rules.is_day_approved(row, day_index) and self.gate(row.project_id).is_locked(self.days[day_index]):
            self.cell_errors[cell] = "This day is not open for time entry"
            return ActionResult.error(self.cell_errors[cell])
        try:
            updated = rules.set_hours(row, day_index, value)
        except rules.TimesheetRuleError as e:
            self.cell_errors[cell] = str(e)
            return ActionResult.error(str(e))
        self.cell_errors.pop(cell, None)
        self._replace_row(updated)
        return ActionResult.success()

    def set_comment(self, row_key: str, day_index: int, text: Optional[str]) -> ActionResult:
        row = self.find_row(row_key)
        if row is None:
            return ActionResult.error("Row not found")
        try:
            self._replace_row(rules.set_comment(row, day_index, text))
        except rules.DayLocked as e:
            return ActionResult.error(str(e))
        return ActionResult.success()

    def copy_forward(self, row_key: str, source_index: int) -> ActionResult:
        row = self.find_row(row_key)
        if row is None:
            return ActionResult.error("Row not found")
        updated, copied = rules.copy_hours_forward(
            row, source_index, self.week_start,
            holidays=self.holidays,
            project_end=_earliest(self.project_ends.get(row.project_id), self.allocation_ends.get(row.project_id)),
        )
        if not copied:
            return ActionResult.success()
        self._replace_row(updated)
        return ActionResult.success(f"Copied {row.hours[source_index]} to {_plural(copied, 'day')}")

    def copy_project_forward(self, project_id: str, source_index: int) -> ActionResult:
        updated, copied = rules.copy_project_day_hours(
            self.rows, project_id, source_index, self.week_start,
            holidays=self.holidays,
            project_end=_earliest(self.project_ends.get(project_id), self.allocation_ends.get(project_id)),
        )
        if not copied:
            return ActionResult.success()
        self.rows = updated
        return ActionResult.success(f"Copied hours and comments for all categories to {_plural(copied, 'day')}")

    def delete_row(self, row_key: str) -> ActionResult:
        row = self.find_row(row_key)
        if row is None:
            return ActionResult.error("Row not found")
        try:
            rules.ensure_row_deletable(row, self.status)
        except rules.RowLocked as e:
            return ActionResult.error(str(e))

        try:
            deleted = self.gateway.delete_row(self.employee_id, self.week_start, row.project_id, row.uda_id)
        except GatewayError as e:
            logger.error("Deleting row %s failed: %s", row_key, e)
            return ActionResult.error(e.message or "Failed to delete row")

        self.rows = [r for r in self.rows if r.key != row_key]
        self.cell_errors = {k: v for k, v in self.cell_errors.items() if k[0] != row_key}
        logger.info("Deleted row %s for %s week %s (%d entries)", row_key, self.employee_id, self.week_start, deleted)
        return ActionResult.success(f"Deleted {row.uda_name} successfully ({deleted} entries)")

    # ── draft / submit ──

    def save_draft(self) -> ActionResult:
        payload = rules.build_week_payload(self.snapshot(), "draft")
        if not payload.rows:
            return ActionResult.info("No non-approved entries to save")
        try:
            self.gateway.save_draft(payload)
        except GatewayError as e:
            logger.error("Saving draft for %s week %s failed: %s", self.employee_id, self.week_start, e)
            return ActionResult.error(e.message or "Failed to save draft")

        self.status = rules.status_after_draft(self.rows, self.status)
        self._reload_after_write()
        return ActionResult.success("Non-approved entries saved as draft")

    def submit(self) -> ActionResult:
        try:
            rules.validate_submission(self.rows, self.week_start)
        except rules.TimesheetRuleError as e:
            return ActionResult.error(str(e))

        try:
            self.gateway.submit(rules.build_week_payload(self.snapshot(), "submitted"))
        except GatewayError as e:
            logger.error("Submitting %s week %s failed: %s", self.employee_id, self.week_start, e)
            return ActionResult.error(e.message or "Failed to submit timesheet")

        self._reload_after_write()
        return ActionResult.success(
            f"Non-approved entries submitted successfully for Employee ID: {self.employee_id}"
        )

    def _reload_after_write(self) -> None:
        result = self.load_week(self.week_start)
        if not result.ok:
            logger.warning("Reload after write failed for %s: %s", self.employee_id, result.message)
