"""
Manager approval console.

Loads the approver view of several employees' weeks and runs bulk approve /
revision actions over the current selection. Backend calls go out one
employee at a time, in load order, so audit rows come out in a predictable
sequence and a failure can be pinned to one employee; one failing employee
never stops the rest.
"""

import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Optional

from opsportal.schemas.timesheet import DAYS_IN_WEEK, ReminderRequest, TimesheetWeek
from opsportal.services.approval_selection import (
    ApprovalSelection,
    all_pending_day_indices,
    resolve_approve_cells,
    resolve_reverts,
)
from opsportal.services.timesheet_gateway import GatewayError, TimesheetGateway
from opsportal.services.timesheet_rules import monday_of
from opsportal.services.timesheet_workspace import ActionResult

logger = logging.getLogger(__name__)


def _batch_result(verb: str, succeeded: int, failed: int) -> ActionResult:
    message = f"{verb}: {succeeded} succeeded, {failed} failed"
    if not failed:
        return ActionResult.success(message)
    if succeeded:
        return ActionResult(True, message, "warning")
    return ActionResult.error(message)


class ApprovalWorkspace:
    def __init__(self, gateway: TimesheetGateway, manager_id: str, manager_name: Optional[str] = None):
        self.gateway = gateway
        self.manager_id = manager_id
        self.manager_name = manager_name

        self.project_id = "all"
        self.week_start: Optional[date] = None
        self.employee_ids: list[str] = []
        self.timesheets: "OrderedDict[str, Optional[TimesheetWeek]]" = OrderedDict()
        self.selection = ApprovalSelection()
        self.row_type: Optional[str] = None
        self._generation = 0

    # ── loading ──

    def load(self, employee_ids: list[str], week_start: date, project_id: str = "all") -> ActionResult:
        if not employee_ids:
            return ActionResult.error("Select project and employees to load approvals")

        self._generation += 1
        generation = self._generation
        self.employee_ids = list(dict.fromkeys(employee_ids))
        self.week_start = monday_of(week_start)
        self.project_id = project_id or "all"

        loaded: "OrderedDict[str, Optional[TimesheetWeek]]" = OrderedDict()
        failed = 0
        for employee_id in self.employee_ids:
            try:
                loaded[employee_id] = self.gateway.get_approver_timesheet(
                    self.manager_id, self.project_id, employee_id, self.week_start,
                )
            except GatewayError:
                logger.exception("Loading approvals for %s failed", employee_id)
                loaded[employee_id] = None
                failed += 1

        if generation != self._generation:
            logger.warning("Discarding stale approval load %d (current %d)", generation, self._generation)
            return ActionResult(False, "Selection changed while loading; response discarded", "info")

        self.timesheets = loaded
        if failed == len(self.employee_ids):
            return ActionResult.error("Failed to load approvals")

        found = sum(1 for week in loaded.values() if week is not None)
        if not found:
            return ActionResult.info("No timesheets found for the selected employees")
        message = f"Loaded {found} timesheet(s) for approval"
        if failed:
            return ActionResult(True, f"{message}; {failed} failed to load", "warning")
        return ActionResult.success(message)

    def reload(self) -> ActionResult:
        if not self.employee_ids or self.week_start is None:
            return ActionResult.info("Nothing loaded")
        return self.load(self.employee_ids, self.week_start, self.project_id)

    @property
    def week_end(self) -> Optional[date]:
        return self.week_start + timedelta(days=DAYS_IN_WEEK - 1) if self.week_start else None

    def _clear_after_action(self) -> None:
        self.selection.employees.clear()
        self.selection.entries.clear()
        self.selection.unchecked.clear()
        self.selection.days.clear()

    def _nothing_pending(self) -> ActionResult:
        if self.selection.days or self.selection.entry_mode:
            return ActionResult.info("No pending entries found for selected employees on selected days")
        return ActionResult.info("No pending entries found for selected employees")

    # ── selection-driven actions ──

    def approve_selected(self) -> ActionResult:
        if self.selection.is_empty:
            return ActionResult.error("Please select at least one employee using the checkbox")

        approved_days = 0
        employees = 0
        failed = 0
        for employee_id in self.selection.target_employees(self.timesheets):
            cells = resolve_approve_cells(self.selection, employee_id, self.timesheets[employee_id], self.row_type)
            if not cells:
                continue
            days = sorted({c.day_index for c in cells})
            try:
                result = self.gateway.bulk_approve_days(
                    self.manager_id, self.project_id, employee_id, self.week_start, days, cells,
                )
            except GatewayError:
                logger.exception("Approving days %s for %s failed", days, employee_id)
                failed += 1
                continue
            if result.updated_count:
                approved_days += len(result.day_indices)
                employees += 1

        if not approved_days and not failed:
            return self._nothing_pending()

        self._clear_after_action()
        self.reload()
        if failed and not approved_days:
            return ActionResult.error(f"Failed to approve selected days for {failed} employee(s)")
        message = f"Approved {approved_days} day(s) across {employees} employee(s)"
        if failed:
            return ActionResult(True, f"{message}; {failed} employee(s) failed", "warning")
        logger.info("%s approved %d day(s) across %d employee(s)", self.manager_id, approved_days, employees)
        return ActionResult.success(message)

    def request_revision(self, reason: str) -> ActionResult:
        reason = (reason or "").strip()
        if not reason:
            return ActionResult.error("Comment is required for rejection")
        if self.selection.is_empty:
            return ActionResult.error("Please select at least one employee using the checkbox")

        reverted = 0
        employees = 0
        failed = 0
        for employee_id in self.selection.target_employees(self.timesheets):
            reverts = resolve_reverts(self.selection, employee_id, self.timesheets[employee_id], reason, self.row_type)
            if not reverts:
                continue
            try:
                updated = self.gateway.request_revision(
                    self.manager_id, self.project_id, employee_id, self.week_start, reverts,
                )
            except GatewayError:
                logger.exception("Revision request for %s failed", employee_id)
                failed += 1
                continue
            if updated:
                reverted += updated
                employees += 1

        if not reverted and not failed:
            return self._nothing_pending()

        self._clear_after_action()
        self.reload()
        if failed and not reverted:
            return ActionResult.error(f"Failed to revert selected days for {failed} employee(s)")
        message = f"Revision requested for {reverted} entr{'y' if reverted == 1 else 'ies'} across {employees} employee(s)"
        if failed:
            return ActionResult(True, f"{message}; {failed} employee(s) failed", "warning")
        return ActionResult.success(message)

    # ── whole-week actions ──

    def _loaded_employees(self) -> list[str]:
        return [emp for emp, week in self.timesheets.items() if week is not None]

    def approve_all(self) -> ActionResult:
        employees = self._loaded_employees()
        if not employees:
            return ActionResult.error("No timesheet loaded")

        succeeded = failed = 0
        for employee_id in employees:
            try:
                updated = self.gateway.approve_week(self.manager_id, self.project_id, employee_id, self.week_start)
            except GatewayError:
                logger.exception("Approving week for %s failed", employee_id)
                failed += 1
                continue
            if updated:
                succeeded += 1

        if not succeeded and not failed:
            return ActionResult.info("No pending entries found for selected employees")
        self.reload()
        return _batch_result("Approve all", succeeded, failed)

    def reject_all(self, reason: str) -> ActionResult:
        reason = (reason or "").strip()
        if not reason:
            return ActionResult.error("Rejection reason is required")
        employees = self._loaded_employees()
        if not employees:
            return ActionResult.error("No timesheet loaded")

        everything = ApprovalSelection()
        succeeded = failed = 0
        for employee_id in employees:
            reverts = resolve_reverts(everything, employee_id, self.timesheets[employee_id], reason)
            if not reverts:
                continue
            try:
                updated = self.gateway.request_revision(
                    self.manager_id, self.project_id, employee_id, self.week_start, reverts,
                )
            except GatewayError:
                logger.exception("Rejecting week for %s failed", employee_id)
                failed += 1
                continue
            if updated:
                succeeded += 1

        if not succeeded and not failed:
            return ActionResult.info("No pending entries found for selected employees")
        self.reload()
        return _batch_result("Reject all", succeeded, failed)

    def pending_days(self, employee_id: str) -> list[int]:
        return all_pending_day_indices(self.timesheets.get(employee_id))

    # ── reminders ──

    def send_reminder(
        self,
        employee_id: str,
        employee_name: Optional[str] = None,
        project_name: Optional[str] = None,
    ) -> ActionResult:
        if self.week_start is None:
            return ActionResult.error("No week selected")
        reminder = ReminderRequest(
            employee_id=employee_id,
            employee_name=employee_name,
            manager_id=self.manager_id,
            manager_name=self.manager_name,
            project_id=None if self.project_id == "all" else self.project_id,
            project_name=project_name,
            week_start_date=self.week_start,
            week_end_date=self.week_end,
        )
        try:
            self.gateway.send_reminder(reminder)
        except GatewayError as e:
            logger.error("Reminder to %s failed: %s", employee_id, e)
            return ActionResult.error("Failed to send reminder")
        return ActionResult.success(f"Reminder sent to {employee_name or employee_id}")
