from datetime import date

from opsportal.schemas.timesheet import EntryMeta, TimesheetRow, TimesheetWeek
from opsportal.services.approval_selection import (
    ApprovalSelection,
    EntryRef,
    all_pending_day_indices,
    resolve_approve_cells,
    resolve_cells,
    resolve_day_indices,
    resolve_reverts,
)

WEEK = date(2026, 10, 5)


def week(employee_id="EMP1", approved=(), revision=(), uda_id="U1", row_type="General"):
    meta = []
    for i in range(7):
        if i >= 5:
            meta.append(None)
        elif i in approved:
            meta.append(EntryMeta(approval_status="approved"))
        elif i in revision:
            meta.append(EntryMeta(approval_status="revision_requested"))
        else:
            meta.append(EntryMeta(approval_status="pending"))
    row = TimesheetRow(project_id="P1", uda_id=uda_id, uda_name="Dev", type=row_type,
                       hours=["08:00"] * 5 + [None, None], entry_meta=meta)
    return TimesheetWeek(employee_id=employee_id, employee_name=employee_id, week_start_date=WEEK, rows=[row])


def test_explicit_entries_skip_already_approved_cells():
    sel = ApprovalSelection()
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 2))
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 3))
    assert resolve_day_indices(sel, "EMP1", week(approved={3})) == [2]


def test_approve_cells_name_each_selected_entry():
    sel = ApprovalSelection()
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 2))
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 3))
    cells = resolve_approve_cells(sel, "EMP1", week(approved={3}))
    assert [(c.day_index, c.uda_id, c.project_id) for c in cells] == [(2, "U1", "P1")]


def test_checked_employee_covers_every_pending_cell():
    sel = ApprovalSelection()
    sel.toggle_employee("EMP1")
    assert resolve_day_indices(sel, "EMP1", week(approved={0}, revision={1})) == [2, 3, 4]


def test_unchecking_an_entry_of_a_checked_employee_excludes_it():
    sel = ApprovalSelection()
    sel.toggle_employee("EMP1")
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 4))
    assert EntryRef("EMP1", "P1|U1", 4) in sel.unchecked
    assert not sel.is_entry_selected(EntryRef("EMP1", "P1|U1", 4))
    assert resolve_day_indices(sel, "EMP1", week()) == [0, 1, 2, 3]


def test_toggling_the_employee_resets_entry_overrides():
    sel = ApprovalSelection()
    sel.toggle_employee("EMP1")
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 4))
    sel.toggle_employee("EMP1")
    sel.toggle_employee("EMP1")
    assert sel.unchecked == set()
    assert resolve_day_indices(sel, "EMP1", week()) == [0, 1, 2, 3, 4]


def test_day_checkboxes_narrow_a_checked_employee():
    sel = ApprovalSelection()
    sel.toggle_employee("EMP1")
    sel.toggle_day(1)
    sel.toggle_day(3)
    assert resolve_day_indices(sel, "EMP1", week(approved={3})) == [1]


def test_entry_choices_take_precedence_over_days():
    sel = ApprovalSelection()
    sel.toggle_day(0)
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 2))
    assert resolve_day_indices(sel, "EMP1", week()) == [2]


def test_entries_of_other_employees_do_not_leak():
    sel = ApprovalSelection()
    sel.toggle_entry(EntryRef("EMP2", "P1|U1", 0))
    assert resolve_day_indices(sel, "EMP1", week()) == []
    assert resolve_day_indices(sel, "EMP2", week("EMP2")) == [0]


def test_target_employees_keep_load_order_and_skip_missing_weeks():
    loaded = {"EMP3": week("EMP3"), "EMP1": week(), "EMP2": None}
    sel = ApprovalSelection()
    sel.toggle_employee("EMP1")
    sel.toggle_employee("EMP2")
    sel.toggle_entry(EntryRef("EMP3", "P1|U1", 0))
    assert sel.target_employees(loaded) == ["EMP3", "EMP1"]


def test_resolve_reverts_carries_category_and_reason():
    sel = ApprovalSelection()
    sel.toggle_entry(EntryRef("EMP1", "P1|U1", 1))
    reverts = resolve_reverts(sel, "EMP1", week(), "Split by task")
    assert [(r.day_index, r.uda_id, r.reason) for r in reverts] == [(1, "U1", "Split by task")]


def test_row_type_filter():
    sel = ApprovalSelection()
    sel.toggle_employee("EMP1")
    assert resolve_cells(sel, "EMP1", week(row_type="Bench"), row_type="General") == []
    assert len(resolve_cells(sel, "EMP1", week(row_type="Bench"), row_type="Bench")) == 5


def test_all_pending_and_missing_week():
    assert all_pending_day_indices(week(approved={0, 4})) == [1, 2, 3]
    assert all_pending_day_indices(None) == []


def test_clear_and_is_empty():
    sel = ApprovalSelection()
    assert sel.is_empty
    sel.toggle_employee("EMP1")
    sel.toggle_day(2)
    assert not sel.is_empty
    sel.clear()
    assert sel.is_empty and not sel.days
