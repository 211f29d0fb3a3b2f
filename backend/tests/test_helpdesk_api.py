from opsportal import dependencies
from opsportal.models.audit_log import AuditLog
from opsportal.services import ticket_visibility

from conftest import EMP, EMP2, IT_ADMIN, MGR, SUPER

BASE = "/api/v1/helpdesk"
APPROVALS = f"{BASE}/approvals"
APPROVER = {"employee_id": "MGR1", "name": "Mona"}


def sub_category(client, name, requires_approval, l1_approvers):
    r = client.post("/api/v1/super-admin/sub-categories", headers=SUPER, json={
        "high_level_category": "IT",
        "sub_category": name,
        "requires_approval": requires_approval,
        "processing_queue": "IT Support",
        "specialist_queue": "Desktop",
        "approval_config": {"l1": {"enabled": True, "approvers": l1_approvers}},
    })
    assert r.status_code == 201, r.text


def raise_ticket(client, subject, sub="Laptop", module="IT", urgency="Medium"):
    r = client.post(f"{BASE}/tickets", headers=EMP, json={
        "module": module, "sub_category": sub, "subject": subject, "urgency": urgency, "user_name": "Asha",
    })
    assert r.status_code == 201, r.text
    return r.json()


def it_view(client, **params):
    r = client.get(f"{BASE}/it-admin/tickets", headers=IT_ADMIN, params=params)
    assert r.status_code == 200, r.text
    return r.json()


def test_ticket_without_approval_is_routed_immediately(client):
    t = raise_ticket(client, "Screen broken")
    assert t["ticket_number"] == "TKT0001"
    assert t["status"] == "Routed"
    assert t["routed_to"] == "IT"
    assert t["approval_completed"] is True
    assert t["history"][0]["action"] == "created"


def test_approval_gated_ticket_stays_hidden_from_it(client):
    sub_category(client, "Software Install", True, [APPROVER])
    gated = raise_ticket(client, "Need Photoshop", sub="Software Install")
    assert gated["status"] == "Pending Level-1 Approval"
    assert gated["routed_to"] is None

    routed = raise_ticket(client, "Mouse dead")
    assert [t["id"] for t in it_view(client, view="unassigned")] == [routed["id"]]
    assert [t["id"] for t in it_view(client, view="all")] == [routed["id"]]


def test_enabled_level_without_approvers_does_not_gate(client):
    sub_category(client, "Access Card", True, [])
    t = raise_ticket(client, "Card lost", sub="Access Card")
    assert t["status"] == "Routed"
    assert t["requires_approval"] is False


def test_other_modules_never_reach_it(client):
    raise_ticket(client, "Reimbursement", sub="Claims", module="Finance")
    assert it_view(client, view="all") == []


def test_it_admin_endpoints_require_it_admin(client):
    assert client.get(f"{BASE}/it-admin/tickets", headers=EMP).status_code == 403
    assert client.get(f"{BASE}/it-admin/tickets", headers=SUPER).status_code == 200


def test_bad_view_params_are_rejected(client):
    r = client.get(f"{BASE}/it-admin/tickets", headers=IT_ADMIN, params={"direction": "sideways"})
    assert r.status_code == 400


def test_unassigned_view_sorted_by_urgency(client):
    raise_ticket(client, "Low one", urgency="Low")
    raise_ticket(client, "Critical one", urgency="Critical")
    raise_ticket(client, "High one", urgency="High")
    assert [t["subject"] for t in it_view(client)] == ["Critical one", "High one", "Low one"]
    assert [t["subject"] for t in it_view(client, search="high")] == ["High one"]


def test_assign_and_reassign(client):
    t = raise_ticket(client, "VPN down")
    r = client.post(f"{BASE}/tickets/{t['id']}/assign", headers=IT_ADMIN, json={
        "employee_id": "IT7", "employee_name": "Kim", "assigned_by_name": "Ivy",
    })
    assert r.status_code == 200, r.text
    assigned = r.json()
    assert assigned["status"] == "Assigned"
    assert assigned["assignment"]["assigned_to_id"] == "IT7"
    assert [h["action"] for h in assigned["history"]] == ["created", "assigned"]

    assert it_view(client, view="unassigned") == []
    assert [x["id"] for x in it_view(client, view="assigned")] == [t["id"]]

    stats = client.get(f"{BASE}/it-admin/stats", headers=IT_ADMIN).json()
    assert stats["assigned"] == 1 and stats["unassigned"] == 0 and stats["total"] == 1

    r = client.put(f"{BASE}/tickets/{t['id']}/reassign", headers=IT_ADMIN, json={
        "new_employee_id": "IT8", "new_employee_name": "Lee",
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "Reassignment reason is required"

    r = client.put(f"{BASE}/tickets/{t['id']}/reassign", headers=IT_ADMIN, json={
        "new_employee_id": "IT8", "new_employee_name": "Lee", "reason": "Kim is on leave",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["assignment"]["assigned_to_id"] == "IT8"
    assert body["assignment"]["previous_assignee_id"] == "IT7"

    requester_notes = client.get("/api/v1/notifications/", headers=EMP).json()
    assert [n["title"] for n in requester_notes] == ["Ticket TKT0001 assigned"]


def test_reassign_requires_an_existing_assignee(client):
    t = raise_ticket(client, "Printer")
    r = client.put(f"{BASE}/tickets/{t['id']}/reassign", headers=IT_ADMIN, json={
        "new_employee_id": "IT8", "new_employee_name": "Lee", "reason": "load",
    })
    assert r.status_code == 400


def test_gated_ticket_cannot_be_assigned(client):
    sub_category(client, "Software Install", True, [APPROVER])
    t = raise_ticket(client, "Need Photoshop", sub="Software Install")
    r = client.post(f"{BASE}/tickets/{t['id']}/assign", headers=IT_ADMIN, json={
        "employee_id": "IT7", "employee_name": "Kim",
    })
    assert r.status_code == 409


def test_new_it_ticket_is_broadcast_to_it_admins(client):
    raise_ticket(client, "Keyboard")
    notes = client.get("/api/v1/notifications/", headers=IT_ADMIN).json()
    assert [n["type"] for n in notes] == ["ticket"]
    assert client.get("/api/v1/notifications/unread-count", headers=IT_ADMIN).json() == {"unread": 1}

    client.put(f"/api/v1/notifications/{notes[0]['id']}/read", headers=IT_ADMIN)
    assert client.get("/api/v1/notifications/unread-count", headers=IT_ADMIN).json() == {"unread": 0}


def test_filter_options(client):
    raise_ticket(client, "A", sub="VPN")
    raise_ticket(client, "B", sub="Laptop")
    options = client.get(f"{BASE}/it-admin/filters", headers=IT_ADMIN).json()
    assert options == {"statuses": ["Routed"], "types": ["Laptop", "VPN"]}


def test_gated_ticket_cannot_be_reassigned(client):
    sub_category(client, "Software Install", True, [APPROVER])
    t = raise_ticket(client, "Need Photoshop", sub="Software Install")
    r = client.put(f"{BASE}/tickets/{t['id']}/reassign", headers=IT_ADMIN, json={
        "new_employee_id": "IT8", "new_employee_name": "Lee", "reason": "load",
    })
    assert r.status_code == 409


def test_it_admin_guard_and_dashboard_share_one_role_set():
    assert dependencies.IT_ADMIN_ROLES is ticket_visibility.IT_ADMIN_ROLES


# ── approval chain ──


def approval_chain(client, name="Software Install"):
    # L2 is enabled without approvers, so the chain is L1 -> L3
    r = client.post("/api/v1/super-admin/sub-categories", headers=SUPER, json={
        "high_level_category": "IT",
        "sub_category": name,
        "requires_approval": True,
        "processing_queue": "IT Support",
        "specialist_queue": "Desktop",
        "approval_config": {
            "l1": {"enabled": True, "approvers": [APPROVER]},
            "l2": {"enabled": True, "approvers": []},
            "l3": {"enabled": True, "approvers": [{"employee_id": "EMP2", "name": "Ravi"}]},
        },
    })
    assert r.status_code == 201, r.text


def decide(client, headers, level, ticket_id, status="Approved", comments=None):
    return client.post(f"{APPROVALS}/{level}/{ticket_id}", headers=headers,
                       json={"status": status, "comments": comments})


def test_ticket_walks_the_approval_chain_then_routes_to_it(client, db):
    approval_chain(client)
    t = raise_ticket(client, "Need Photoshop", sub="Software Install")
    assert t["status"] == "Pending Level-1 Approval"
    assert t["current_approval_level"] == "l1"
    assert t["approval_status"] == "Pending"

    [mine] = client.get(f"{APPROVALS}/pending/MGR1", headers=MGR).json()
    assert mine["id"] == t["id"] and mine["can_approve"] is True
    [theirs] = client.get(f"{APPROVALS}/pending/EMP2", headers=EMP2).json()
    assert theirs["view_only"] is True and theirs["can_approve"] is False

    assert decide(client, EMP2, "l1", t["id"]).status_code == 403
    r = decide(client, MGR, "l3", t["id"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Ticket is not at L3 approval stage. Current stage: L1"

    r = decide(client, MGR, "l1", t["id"], comments="ok for design team")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "Pending Level-3 Approval"
    assert body["current_approval_level"] == "l3"
    assert body["approval_completed"] is False
    assert body["routed_to"] is None
    assert it_view(client, view="all") == []
    assert decide(client, MGR, "l1", t["id"]).status_code == 400

    r = decide(client, EMP2, "l3", t["id"])
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "Routed"
    assert body["routed_to"] == "IT"
    assert body["approval_completed"] is True
    assert body["current_approval_level"] is None
    assert [h["action"] for h in body["history"]] == ["created", "L1_approved", "L3_approved", "routed"]
    assert body["history"][1]["details"].startswith("L1 Approved by MGR1: ok for design team")
    assert [x["id"] for x in it_view(client, view="unassigned")] == [t["id"]]

    history = client.get(f"{APPROVALS}/history/{t['id']}", headers=EMP).json()
    assert [(h["level"], h["approver_id"]) for h in history["approver_history"]] == [("L1", "MGR1"), ("L3", "EMP2")]
    assert history["approval_status"] == "Approved"

    assert client.get(f"{APPROVALS}/pending/MGR1", headers=MGR).json() == []
    [done] = client.get(f"{APPROVALS}/all/MGR1", headers=MGR).json()
    assert done["is_historical"] is True and done["can_approve"] is False

    titles = {n["title"] for n in client.get("/api/v1/notifications/", headers=EMP).json()}
    assert {"Ticket TKT0001 L1 approved", "Ticket TKT0001 approved"} <= titles
    assert [n["title"] for n in client.get("/api/v1/notifications/", headers=EMP2).json()] == ["Approval needed: TKT0001"]

    actions = sorted(a.action for a in db.query(AuditLog).filter(AuditLog.resource_type == "helpdesk_ticket").all())
    assert actions == ["ticket.l1_approve", "ticket.l3_approve"]


def test_rejection_stops_the_chain(client):
    approval_chain(client)
    t = raise_ticket(client, "Need Photoshop", sub="Software Install")
    r = decide(client, MGR, "l1", t["id"], status="Rejected", comments="not budgeted")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "Rejected"
    assert body["approval_status"] == "Rejected"
    assert body["approval_completed"] is False
    assert body["history"][-1]["action"] == "L1_rejected"

    r = decide(client, EMP2, "l3", t["id"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Ticket is not awaiting approval"
    assert it_view(client, view="all") == []

    [note] = client.get("/api/v1/notifications/", headers=EMP).json()
    assert note["type"] == "rejection"
    assert client.get(f"{APPROVALS}/pending/EMP2", headers=EMP2).json() == []
    assert [x["is_historical"] for x in client.get(f"{APPROVALS}/all/EMP2", headers=EMP2).json()] == [True]


def test_single_level_chain_routes_on_first_approval(client):
    sub_category(client, "Software Install", True, [APPROVER])
    t = raise_ticket(client, "Need Photoshop", sub="Software Install")
    r = decide(client, SUPER, "l1", t["id"])
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "Routed"
    assert r.json()["approval_status"] == "Approved"


def test_approval_queue_is_private_and_levels_are_known(client):
    approval_chain(client)
    t = raise_ticket(client, "Need Photoshop", sub="Software Install")
    assert client.get(f"{APPROVALS}/pending/MGR1", headers=EMP).status_code == 403
    assert len(client.get(f"{APPROVALS}/pending/MGR1", headers=SUPER).json()) == 1
    assert decide(client, MGR, "l4", t["id"]).status_code == 404


def test_routed_ticket_is_not_open_for_approval(client):
    t = raise_ticket(client, "Mouse dead")
    r = decide(client, SUPER, "l1", t["id"])
    assert r.status_code == 400
    assert r.json()["detail"] == "Ticket is not awaiting approval"
