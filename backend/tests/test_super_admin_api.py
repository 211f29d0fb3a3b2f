from conftest import EMP, SUPER

BASE = "/api/v1/super-admin"
APPROVER = {"employee_id": "MGR1", "name": "Mona"}


def test_sub_category_flow_label_ignores_levels_without_approvers(client):
    r = client.post(f"{BASE}/sub-categories", headers=SUPER, json={
        "high_level_category": "IT",
        "sub_category": "Software Install",
        "requires_approval": True,
        "processing_queue": "IT Support",
        "specialist_queue": "Apps",
        "approval_config": {
            "l1": {"enabled": True, "approvers": [APPROVER]},
            "l2": {"enabled": True, "approvers": []},
            "l3": {"enabled": True, "approvers": [APPROVER]},
        },
    })
    assert r.status_code == 201, r.text
    cfg = r.json()
    assert cfg["active_levels"] == ["L1", "L3"]
    assert cfg["flow_label"] == "L1 → L3"

    r = client.put(f"{BASE}/sub-categories/{cfg['id']}", headers=SUPER, json={
        "approval_config": {"l1": {"enabled": False, "approvers": [APPROVER]}},
    })
    assert r.json()["flow_label"] == "Not Configured"

    listed = client.get(f"{BASE}/sub-categories", headers=SUPER).json()
    assert [c["sub_category"] for c in listed] == ["Software Install"]

    assert client.delete(f"{BASE}/sub-categories/{cfg['id']}", headers=SUPER).json() == {"ok": True}
    assert client.get(f"{BASE}/sub-categories", headers=SUPER).json() == []


def test_duplicate_sub_category_conflicts(client):
    body = {"high_level_category": "IT", "sub_category": "VPN",
            "processing_queue": "IT Support", "specialist_queue": "Network"}
    assert client.post(f"{BASE}/sub-categories", headers=SUPER, json=body).status_code == 201
    assert client.post(f"{BASE}/sub-categories", headers=SUPER, json=body).status_code == 409


def test_users_crud(client):
    r = client.post(f"{BASE}/users", headers=SUPER, json={
        "employee_id": "EMP5", "email": "Zed@Example.com", "password": "correct-horse", "name": "Zed",
    })
    assert r.status_code == 201, r.text
    user = r.json()
    assert user["email"] == "zed@example.com"
    assert user["role"] == "employee"

    dup = client.post(f"{BASE}/users", headers=SUPER, json={
        "employee_id": "EMP6", "email": "zed@example.com", "password": "correct-horse", "name": "Zed 2",
    })
    assert dup.status_code == 409

    r = client.put(f"{BASE}/users/{user['user_id']}", headers=SUPER, json={"role": "manager"})
    assert r.json()["role"] == "manager"

    managers = client.get(f"{BASE}/users", headers=SUPER, params={"role_filter": "manager"}).json()
    assert [u["employee_id"] for u in managers] == ["EMP5"]


def test_unknown_role_is_rejected(client):
    r = client.post(f"{BASE}/users", headers=SUPER, json={
        "employee_id": "EMP5", "email": "a@b.c", "password": "correct-horse", "name": "A", "role": "overlord",
    })
    assert r.status_code == 422


def test_console_is_super_admin_only(client):
    assert client.get(f"{BASE}/users", headers=EMP).status_code == 403
    assert client.get(f"{BASE}/approval-levels", headers=SUPER).json() == ["L1", "L2", "L3"]
