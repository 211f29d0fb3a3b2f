"""
Effective selection for bulk approval and revision requests.

The approval console keeps four independent sets:

- checked employees
- checked week days (0 = Monday)
- explicitly checked entries
- entries explicitly unchecked while their employee is checked

An entry counts as selected when it is in the entries set, or when its
employee is checked and it is not in the unchecked set. Which of those sets
decides the scope for an employee is resolved here, in one place:

1. entry-level choices (entries or unchecked) if there are any,
2. otherwise the checked days,
3. otherwise every pending cell.

Only pending cells with hours are ever returned.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from opsportal.schemas.timesheet import ApproveCell, RevertItem, TimesheetRow, TimesheetWeek
from opsportal.services.timesheet_rules import has_hours, is_pending_cell


@dataclass(frozen=True)
class EntryRef:
    employee_id: str
    row_key: str
    day_index: int


@dataclass
class ApprovalSelection:
    employees: set = field(default_factory=set)
    days: set = field(default_factory=set)
    entries: set = field(default_factory=set)
    unchecked: set = field(default_factory=set)

    @property
    def entry_mode(self) -> bool:
        return bool(self.entries or self.unchecked)

    @property
    def is_empty(self) -> bool:
        return not (self.employees or self.entries)

    def toggle_employee(self, employee_id: str) -> None:
        if employee_id in self.employees:
            self.employees.discard(employee_id)
        else:
            self.employees.add(employee_id)
        # switching the employee resets the per-entry overrides for that employee
        self.unchecked = {r for r in self.unchecked if r.employee_id != employee_id}
        self.entries = {r for r in self.entries if r.employee_id != employee_id}

    def toggle_day(self, day_index: int) -> None:
        if day_index in self.days:
            self.days.discard(day_index)
        else:
            self.days.add(day_index)

    def toggle_entry(self, ref: EntryRef) -> None:
        if ref.employee_id in self.employees:
            if ref in self.unchecked:
                self.unchecked.discard(ref)
            else:
                self.unchecked.add(ref)
        elif ref in self.entries:
            self.entries.discard(ref)
        else:
            self.entries.add(ref)

    def is_entry_selected(self, ref: EntryRef) -> bool:
        if ref in self.entries:
            return True
        return ref.employee_id in self.employees and ref not in self.unchecked

    def clear(self) -> None:
        self.employees.clear()
        self.days.clear()
        self.entries.clear()
        self.unchecked.clear()

    def target_employees(self, loaded: Mapping[str, Optional[TimesheetWeek]]) -> list[str]:
        """Employees with something to act on, in the order they were loaded."""
        with_entries = {r.employee_id for r in self.entries}
        return [
            emp for emp, week in loaded.items()
            if week is not None and (emp in self.employees or emp in with_entries)
        ]


def _row_matches(row: TimesheetRow, row_type: Optional[str]) -> bool:
    if not row_type or row_type == "all":
        return True
    return (row.type or row.billable or row.uda_name) == row_type


def resolve_cells(
    selection: ApprovalSelection,
    employee_id: str,
    week: Optional[TimesheetWeek],
    row_type: Optional[str] = None,
) -> list[tuple[TimesheetRow, int]]:
    """Pending (row, day_index) cells of one employee that the selection covers."""
    if week is None:
        return []

    cells = []
    for row in week.rows:
        if not _row_matches(row, row_type):
            continue
        for day_index in range(len(row.hours)):
            if not is_pending_cell(row, day_index):
                continue
            if selection.entry_mode:
                ref = EntryRef(employee_id, row.key, day_index)
                if not selection.is_entry_selected(ref):
                    continue
            elif selection.days and day_index not in selection.days:
                continue
            cells.append((row, day_index))
    return cells


def resolve_day_indices(
    selection: ApprovalSelection,
    employee_id: str,
    week: Optional[TimesheetWeek],
    row_type: Optional[str] = None,
) -> list[int]:
    return sorted({day for _, day in resolve_cells(selection, employee_id, week, row_type)})


def resolve_approve_cells(
    selection: ApprovalSelection,
    employee_id: str,
    week: Optional[TimesheetWeek],
    row_type: Optional[str] = None,
) -> list[ApproveCell]:
    return [
        ApproveCell(day_index=day, uda_id=row.uda_id, project_id=row.project_id)
        for row, day in resolve_cells(selection, employee_id, week, row_type)
    ]


def resolve_reverts(
    selection: ApprovalSelection,
    employee_id: str,
    week: Optional[TimesheetWeek],
    reason: str,
    row_type: Optional[str] = None,
) -> list[RevertItem]:
    return [
        RevertItem(day_index=day, uda_id=row.uda_id, reason=reason)
        for row, day in resolve_cells(selection, employee_id, week, row_type)
    ]


def all_pending_day_indices(week: Optional[TimesheetWeek]) -> list[int]:
    return resolve_day_indices(ApprovalSelection(), "", week)


def entry_refs(employee_id: str, week: Optional[TimesheetWeek]) -> Iterable[EntryRef]:
    """Every filled cell of a week as a selectable reference."""
    if week is None:
        return []
    return [
        EntryRef(employee_id, row.key, i)
        for row in week.rows
        for i, h in enumerate(row.hours)
        if has_hours(h)
    ]
