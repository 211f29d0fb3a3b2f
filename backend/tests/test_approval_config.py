from types import SimpleNamespace

from opsportal.services.approval_config import (
    NOT_CONFIGURED,
    active_levels,
    approvers_for,
    first_active_level,
    flow_label,
    is_approval_level_active,
)

APPROVER = {"employee_id": "MGR1", "name": "Mona"}


def config(l1=None, l2=None, l3=None):
    empty = {"enabled": False, "approvers": []}
    return {"l1": l1 or empty, "l2": l2 or empty, "l3": l3 or empty}


def test_level_needs_both_enabled_and_approvers():
    assert is_approval_level_active({"enabled": True, "approvers": [APPROVER]})
    assert not is_approval_level_active({"enabled": True, "approvers": []})
    assert not is_approval_level_active({"enabled": False, "approvers": [APPROVER]})
    assert not is_approval_level_active(None)
    assert not is_approval_level_active({})


def test_objects_work_like_dicts():
    assert is_approval_level_active(SimpleNamespace(enabled=True, approvers=[APPROVER]))
    assert not is_approval_level_active(SimpleNamespace(enabled=True, approvers=None))


def test_enabled_level_without_approvers_reads_as_disabled():
    l1 = {"enabled": True, "approvers": [APPROVER]}
    with_empty_l2 = config(l1=l1, l2={"enabled": True, "approvers": []})
    with_disabled_l2 = config(l1=l1, l2={"enabled": False, "approvers": []})
    assert flow_label(with_empty_l2) == flow_label(with_disabled_l2) == "L1"


def test_flow_label_lists_active_levels_in_order():
    level = {"enabled": True, "approvers": [APPROVER]}
    assert flow_label(config(l1=level, l3=level)) == "L1 → L3"
    assert flow_label(config()) == NOT_CONFIGURED
    assert flow_label(None) == NOT_CONFIGURED


def test_first_active_level_and_approvers():
    level = {"enabled": True, "approvers": [APPROVER]}
    cfg = config(l2=level, l3={"enabled": True, "approvers": []})
    assert active_levels(cfg) == ["l2"]
    assert first_active_level(cfg) == "l2"
    assert approvers_for(cfg, "l2") == [APPROVER]
    assert approvers_for(cfg, "l3") == []
