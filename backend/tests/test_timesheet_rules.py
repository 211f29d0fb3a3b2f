from datetime import date

import pytest
from pydantic import ValidationError

from opsportal.schemas.timesheet import EntryMeta, TimesheetRow, TimesheetWeek
from opsportal.services import timesheet_rules as rules

WEEK = date(2026, 10, 5)  # Monday


def make_row(hours, statuses=None, project_id="P1", uda_id="U1", comments=None):
    hours = list(hours) + [None] * (7 - len(hours))
    meta = [None] * 7
    for i, status in (statuses or {}).items():
        meta[i] = EntryMeta(approval_status=status)
    return TimesheetRow(
        project_id=project_id, uda_id=uda_id, uda_name="Development",
        hours=hours, comments=comments, entry_meta=meta,
    )


# ── time values ──

@pytest.mark.parametrize("raw, expected", [
    ("8", "08:00"),
    ("7:5", "07:05"),
    ("07:30", "07:30"),
    ("", "00:00"),
    (None, "00:00"),
    ("24", None),
    ("10:60", None),
    ("abc", None),
    ("7.5", None),
])
def test_normalize_time_input(raw, expected):
    assert rules.normalize_time_input(raw) == expected


def test_minutes_of_treats_blank_and_zero_as_empty():
    assert rules.minutes_of("08:30") == 510
    assert rules.minutes_of("00:00") == 0
    assert rules.minutes_of(None) == 0
    assert not rules.has_hours("0:00")


# ── row shape ──

def test_row_lists_are_always_seven_long():
    r = TimesheetRow(uda_id="U1", uda_name="Dev")
    assert len(r.hours) == len(r.comments) == len(r.entry_meta) == 7

    with pytest.raises(ValidationError):
        TimesheetRow(uda_id="U1", uda_name="Dev", hours=["08:00"])

    with pytest.raises(ValidationError):
        r.hours = ["08:00"] * 6


def test_set_hours_keeps_week_alignment():
    r = rules.set_hours(make_row([]), 2, "6")
    assert r.hours[2] == "06:00"
    assert len(r.hours) == len(r.comments) == len(r.entry_meta) == 7


def test_set_hours_rejects_approved_day():
    r = make_row(["08:00"], {0: "approved"})
    with pytest.raises(rules.DayLocked):
        rules.set_hours(r, 0, "04:00")


def test_set_hours_invalid_input_leaves_row_untouched():
    r = make_row(["08:00"])
    with pytest.raises(rules.InvalidTimeFormat, match="HH:mm"):
        rules.set_hours(r, 0, "eight")
    assert r.hours[0] == "08:00"


def test_clearing_a_cell_drops_its_pending_record():
    r = make_row(["08:00"], {0: "pending"})
    cleared = rules.set_hours(r, 0, "")
    assert cleared.hours[0] == "00:00"
    assert cleared.entry_meta[0] is None


def test_revision_requested_day_is_editable():
    r = make_row(["04:00"], {0: "revision_requested"})
    assert rules.set_hours(r, 0, "08:00").hours[0] == "08:00"


# ── submission ──

def test_short_monday_blocks_submission_then_passes_at_eight_hours():
    rows = [make_row(["02:00"])]
    with pytest.raises(rules.ShortDaysError) as exc:
        rules.validate_submission(rows, WEEK)
    assert [d.day_name for d in exc.value.short_days] == ["Monday"]
    assert exc.value.short_days[0].total_minutes == 120
    assert "Monday (Oct 05): 02:00" in str(exc.value)

    rows = [rules.set_hours(rows[0], 0, "08:00")]
    rules.validate_submission(rows, WEEK)


def test_hours_split_across_rows_add_up():
    rows = [make_row(["05:00"]), make_row(["03:00"], uda_id="U2")]
    assert rules.find_short_days(rows, WEEK) == []


def test_approved_hours_do_not_count_towards_the_daily_minimum():
    rows = [
        make_row(["08:00", "08:00"], {0: "approved", 1: "approved"}),
        make_row(["02:00"], uda_id="U2"),
    ]
    short = rules.find_short_days(rows, WEEK)
    # Tuesday only has approved hours, so it is not checked at all
    assert [(d.day_index, d.total_minutes) for d in short] == [(0, 120)]


def test_empty_or_fully_approved_week_cannot_be_submitted():
    with pytest.raises(rules.NothingToSubmit, match="empty"):
        rules.validate_submission([], WEEK)
    with pytest.raises(rules.NothingToSubmit, match="non-approved"):
        rules.validate_submission([make_row(["08:00"], {0: "approved"})], WEEK)


def test_outgoing_rows_blank_approved_cells_and_drop_empty_rows():
    approved_only = make_row(["08:00"], {0: "approved"}, uda_id="U1")
    mixed = make_row(["08:00", "07:00"], {0: "approved", 1: "pending"}, uda_id="U2",
                     comments=["done", "wip", None, None, None, None, None])
    out = rules.outgoing_rows([approved_only, mixed])

    assert [r.uda_id for r in out] == ["U2"]
    assert out[0].hours[:2] == ["00:00", "07:00"]
    assert out[0].comments[:2] == ["", "wip"]
    assert out[0].entry_meta == [None] * 7


def test_build_week_payload_sets_status_and_week_end():
    week = TimesheetWeek(employee_id="EMP1", employee_name="Asha", week_start_date=WEEK,
                         rows=[make_row(["08:00"])])
    payload = rules.build_week_payload(week, "draft")
    assert payload.status == "draft"
    assert payload.week_end_date == date(2026, 10, 11)


def test_status_after_draft_keeps_status_when_anything_is_approved():
    assert rules.status_after_draft([make_row(["08:00"])], "submitted") == "draft"
    assert rules.status_after_draft([make_row(["08:00"], {0: "approved"})], "submitted") == "submitted"


# ── delete row ──

def test_row_with_approved_day_cannot_be_deleted():
    with pytest.raises(rules.RowLocked):
        rules.ensure_row_deletable(make_row(["08:00", "08:00"], {1: "approved"}), "submitted")


def test_rows_of_an_approved_week_cannot_be_deleted():
    with pytest.raises(rules.RowLocked):
        rules.ensure_row_deletable(make_row(["08:00"]), "approved")


def test_row_without_approvals_is_deletable():
    rules.ensure_row_deletable(make_row(["08:00"], {0: "revision_requested"}), "rejected")


# ── copy forward ──

def test_copy_forward_skips_holiday_and_days_after_project_end():
    wednesday, thursday = date(2026, 10, 7), date(2026, 10, 8)
    r, copied = rules.copy_hours_forward(
        make_row(["08:00"]), 0, WEEK, holidays=[wednesday], project_end=thursday,
    )
    assert copied == 2
    assert r.hours[:5] == ["08:00", "08:00", None, "08:00", None]
    # weekend untouched
    assert r.hours[5:] == [None, None]


def test_copy_forward_skips_approved_days():
    r, copied = rules.copy_hours_forward(make_row(["08:00", "04:00"], {1: "approved"}), 0, WEEK)
    assert r.hours[1] == "04:00"
    assert copied == 3


def test_copy_forward_from_empty_source_is_a_silent_no_op():
    original = make_row([None, "08:00"])
    r, copied = rules.copy_hours_forward(original, 0, WEEK)
    assert copied == 0
    assert r is original


def test_copy_forward_respects_today():
    r, copied = rules.copy_hours_forward(make_row(["08:00"]), 0, WEEK, today=date(2026, 10, 7))
    assert copied == 2
    assert r.hours[3] is None


def test_copy_project_day_hours_copies_comments_for_every_category():
    rows = [
        make_row(["06:00"], comments=["build", None, None, None, None, None, None]),
        make_row(["02:00"], uda_id="U2"),
        make_row(["08:00"], project_id="P2"),
    ]
    out, days = rules.copy_project_day_hours(rows, "P1", 0, WEEK, project_end=date(2026, 10, 7))
    assert days == 2
    assert out[0].hours[1:3] == ["06:00", "06:00"]
    assert out[0].comments[1] == "build"
    assert out[1].hours[1:4] == ["02:00", "02:00", None]
    assert out[2].hours[1] is None


# ── gating ──

def test_day_gate_locks_after_project_end_allocation_end_and_today():
    gate = rules.DayGate(today=date(2026, 10, 9), project_end=date(2026, 10, 8), allocation_end=date(2026, 10, 7))
    assert not gate.is_locked(date(2026, 10, 6))
    assert gate.is_locked(date(2026, 10, 8))  # after allocation end
    assert rules.DayGate(today=date(2026, 10, 6)).is_locked(date(2026, 10, 7))


def test_monday_of_and_weekend():
    assert rules.monday_of(date(2026, 10, 11)) == WEEK
    assert rules.is_weekend(date(2026, 10, 10))
    assert not rules.is_weekend(date(2026, 10, 9))
