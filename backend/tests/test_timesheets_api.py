from conftest import EMP, EMP2, MGR, SUPER, WEEK, row, week_body

BASE = "/api/v1/timesheet-entries"
FULL_WEEK = ["08:00"] * 5


def submit(client, rows, headers=EMP):
    return client.post(f"{BASE}/submit", headers=headers, json=week_body(rows))


def get_week(client, headers=EMP):
    return client.get(f"{BASE}/week/EMP1/{WEEK.isoformat()}", headers=headers).json()


def approve_days(client, days, project_id="P1"):
    return client.put(f"{BASE}/approvals/bulk-approve-days", headers=MGR, json={
        "manager_id": "MGR1", "project_id": project_id, "employee_id": "EMP1",
        "week_start_date": WEEK.isoformat(), "day_indices": days,
    })


def test_empty_week_is_null(client):
    r = client.get(f"{BASE}/week/EMP1/{WEEK.isoformat()}", headers=EMP)
    assert r.status_code == 200
    assert r.json() is None


def test_week_start_must_be_monday(client):
    r = client.get(f"{BASE}/week/EMP1/2026-10-06", headers=EMP)
    assert r.status_code == 400

    body = week_body([row(FULL_WEEK)])
    body["week_start_date"] = "2026-10-06"
    assert client.post(f"{BASE}/draft", headers=EMP, json=body).status_code == 422


def test_employees_cannot_read_someone_elses_week(client):
    assert client.get(f"{BASE}/week/EMP1/{WEEK.isoformat()}", headers=EMP2).status_code == 403
    assert client.get(f"{BASE}/week/EMP1/{WEEK.isoformat()}", headers=MGR).status_code == 200


def test_short_day_rejected_then_accepted_at_eight_hours(client, project):
    r = submit(client, [row(["02:00"])])
    assert r.status_code == 400
    assert "Monday (Oct 05): 02:00" in r.json()["detail"]
    assert get_week(client) is None

    r = submit(client, [row(["08:00"])])
    assert r.status_code == 201, r.text
    assert r.json()["entries_written"] == 1

    week = get_week(client)
    assert week["status"] == "submitted"
    assert week["rows"][0]["entry_meta"][0]["approval_status"] == "pending"


def test_draft_round_trip(client):
    rows = [row(["08:00", "07:30"], comments=["a", "b", None, None, None, None, None]),
            row(["01:00"], uda_id="U2", uda_name="Meetings")]
    r = client.post(f"{BASE}/draft", headers=EMP, json=week_body(rows))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "draft"
    assert r.json()["total_hours"] == 16.5

    week = get_week(client)
    assert week["status"] == "draft"
    by_uda = {r["uda_id"]: r for r in week["rows"]}
    assert by_uda["U1"]["hours"][:2] == ["08:00", "07:30"]
    assert by_uda["U1"]["comments"][:2] == ["a", "b"]
    assert by_uda["U2"]["hours"][0] == "01:00"


def test_clearing_a_cell_in_a_later_save_removes_it(client):
    client.post(f"{BASE}/draft", headers=EMP, json=week_body([row(["08:00", "08:00"])]))
    client.post(f"{BASE}/draft", headers=EMP, json=week_body([row(["08:00", "00:00"])]))
    assert get_week(client)["rows"][0]["hours"][:2] == ["08:00", None]


def test_drafts_are_not_visible_to_approvers(client, project):
    client.post(f"{BASE}/draft", headers=EMP, json=week_body([row(FULL_WEEK)]))
    r = client.get(f"{BASE}/approvals", headers=MGR, params={
        "manager_id": "MGR1", "employee_id": "EMP1", "week_start_date": WEEK.isoformat(), "project_id": "P1",
    })
    assert r.status_code == 200
    assert r.json() is None


def test_bulk_approve_days_only_touches_pending_cells(client, project):
    submit(client, [row(FULL_WEEK)])
    assert approve_days(client, [3]).json() == {"updated_count": 1, "day_indices": [3]}
    # day 3 is already approved, only day 2 changes
    assert approve_days(client, [2, 3]).json() == {"updated_count": 1, "day_indices": [2]}

    meta = get_week(client)["rows"][0]["entry_meta"]
    assert [m["approval_status"] for m in meta[:5]] == ["pending", "pending", "approved", "approved", "pending"]


def test_bulk_approve_days_with_cells_leaves_sibling_entries_pending(client, project):
    submit(client, [row(["04:00"]), row(["04:00"], uda_id="U2", uda_name="Meetings")])
    body = {"manager_id": "MGR1", "project_id": "P1", "employee_id": "EMP1", "week_start_date": WEEK.isoformat()}

    r = client.put(f"{BASE}/approvals/bulk-approve-days", headers=MGR, json={
        **body, "day_indices": [0], "cells": [{"day_index": 0, "uda_id": "U1", "project_id": "P1"}],
    })
    assert r.json() == {"updated_count": 1, "day_indices": [0]}

    by_uda = {x["uda_id"]: x["entry_meta"][0]["approval_status"] for x in get_week(client)["rows"]}
    assert by_uda == {"U1": "approved", "U2": "pending"}

    # a cell outside the requested days is not approved
    r = client.put(f"{BASE}/approvals/bulk-approve-days", headers=MGR, json={
        **body, "day_indices": [1], "cells": [{"day_index": 0, "uda_id": "U2"}],
    })
    assert r.json() == {"updated_count": 0, "day_indices": []}


def test_approve_week_then_week_reads_approved(client, project):
    submit(client, [row(FULL_WEEK)])
    r = client.put(f"{BASE}/approvals/approve-week", headers=MGR, json={
        "manager_id": "MGR1", "project_id": "all", "employee_id": "EMP1", "week_start_date": WEEK.isoformat(),
    })
    assert r.json() == {"updated_count": 5}
    assert get_week(client)["status"] == "approved"


def test_approvals_are_manager_only_and_scoped_to_the_caller(client, project):
    submit(client, [row(FULL_WEEK)])
    body = {"manager_id": "MGR1", "project_id": "P1", "employee_id": "EMP1",
            "week_start_date": WEEK.isoformat(), "day_indices": [0]}
    assert client.put(f"{BASE}/approvals/bulk-approve-days", headers=EMP, json=body).status_code == 403
    assert client.put(f"{BASE}/approvals/bulk-approve-days", headers=MGR,
                      json={**body, "manager_id": "MGR9"}).status_code == 403

    other = {**MGR, "X-Employee-Id": "MGR9"}
    assert client.put(f"{BASE}/approvals/bulk-approve-days", headers=other,
                      json={**body, "manager_id": "MGR9"}).status_code == 403
    assert client.put(f"{BASE}/approvals/bulk-approve-days", headers=SUPER,
                      json={**body, "manager_id": "MGR9"}).json() == {"updated_count": 1, "day_indices": [0]}


def test_revision_request_and_resubmit(client, project):
    submit(client, [row(FULL_WEEK)])
    approve_days(client, [4])
    r = client.put(f"{BASE}/approvals/revision-request", headers=MGR, json={
        "manager_id": "MGR1", "project_id": "P1", "employee_id": "EMP1", "week_start_date": WEEK.isoformat(),
        "reverts": [
            {"day_index": 0, "uda_id": "U1", "reason": "Split by task"},
            {"day_index": 4, "uda_id": "U1", "reason": "Already approved"},
        ],
    })
    assert r.json() == {"updated_count": 1}

    week = get_week(client)
    assert week["status"] == "rejected"
    monday = week["rows"][0]["entry_meta"][0]
    assert monday == {**monday, "approval_status": "revision_requested", "rejected_reason": "Split by task"}
    assert week["rows"][0]["entry_meta"][4]["approval_status"] == "approved"

    notes = client.get("/api/v1/notifications/", headers=EMP).json()
    assert [n["type"] for n in notes] == ["rejection"]

    # employee fixes Monday; approved Friday goes out blanked and stays approved
    r = submit(client, [row(["09:00", "08:00", "08:00", "08:00", "00:00"])])
    assert r.status_code == 201, r.text
    meta = get_week(client)["rows"][0]["entry_meta"]
    assert meta[0]["approval_status"] == "pending"
    assert meta[0]["rejected_reason"] is None
    assert meta[4]["approval_status"] == "approved"


def test_revision_request_needs_a_reason(client, project):
    submit(client, [row(FULL_WEEK)])
    r = client.put(f"{BASE}/approvals/revision-request", headers=MGR, json={
        "manager_id": "MGR1", "project_id": "P1", "employee_id": "EMP1", "week_start_date": WEEK.isoformat(),
        "reverts": [{"day_index": 0, "uda_id": "U1", "reason": "   "}],
    })
    assert r.status_code == 400


def test_row_with_approved_day_cannot_be_deleted(client, project):
    submit(client, [row(FULL_WEEK), row(FULL_WEEK, uda_id="U2", uda_name="Testing")])
    approve_days(client, [0])

    r = client.delete(f"{BASE}/row/EMP1/{WEEK.isoformat()}/P1/U1", headers=EMP)
    assert r.status_code == 409
    assert "approved" in r.json()["detail"]


def test_delete_row_removes_every_day(client, project):
    submit(client, [row(FULL_WEEK), row(["01:00"] * 5, uda_id="U2", uda_name="Meetings")])
    r = client.delete(f"{BASE}/row/EMP1/{WEEK.isoformat()}/P1/U2", headers=EMP)
    assert r.status_code == 200
    assert r.json()["deleted_count"] == 5
    assert [r["uda_id"] for r in get_week(client)["rows"]] == ["U1"]


def test_submit_notifies_project_manager(client, project):
    submit(client, [row(FULL_WEEK)])
    notes = client.get("/api/v1/notifications/", headers=MGR).json()
    assert [n["title"] for n in notes] == ["Timesheet submitted"]
    assert notes[0]["meta"]["employee_id"] == "EMP1"


def test_pending_approval_lists_managed_projects_only(client, project):
    submit(client, [row(FULL_WEEK), row(["01:00"] * 5, project_id="P9", uda_id="U2")])
    entries = client.get(f"{BASE}/pending-approval", headers=MGR).json()
    assert {e["project_id"] for e in entries} == {"P1"}
    assert len(entries) == 5


def test_summary_and_date_range(client):
    submit(client, [row(["08:00", "08:30"])])
    summary = client.get(f"{BASE}/summary/EMP1/{WEEK.isoformat()}", headers=EMP).json()
    assert summary["total_hours"] == 16.5
    assert summary["by_day"] == {"2026-10-05": 8.0, "2026-10-06": 8.5}
    assert summary["statuses"] == {"pending": 2}

    entries = client.get(f"{BASE}/date-range/EMP1/2026-10-06/2026-10-31", headers=EMP).json()
    assert [e["hours"] for e in entries] == ["08:30"]
    assert client.get(f"{BASE}/date-range/EMP1/2026-10-31/2026-10-01", headers=EMP).status_code == 400


def test_send_reminder(client):
    r = client.post(f"{BASE}/send-reminder", headers=MGR, json={
        "employee_id": "EMP1", "employee_name": "Asha", "manager_id": "MGR1",
        "project_name": "Portal", "week_start_date": WEEK.isoformat(),
    })
    assert r.status_code == 201
    assert r.json()["message"] == "Reminder sent to Asha"

    notes = client.get("/api/v1/notifications/", headers=EMP).json()
    assert notes[0]["title"] == "Timesheet Reminder"
    assert "2026-10-11" in notes[0]["description"]
