"""Approval chain configuration (L1-L3) for helpdesk sub-categories."""

from typing import Any, Mapping, Optional

LEVELS = ("l1", "l2", "l3")
NOT_CONFIGURED = "Not Configured"


def _get(level: Any, name: str, default=None):
    if level is None:
        return default
    if isinstance(level, Mapping):
        return level.get(name, default)
    return getattr(level, name, default)


def is_approval_level_active(level: Any) -> bool:
    """A level counts only when it is enabled AND has at least one approver.

    Every caller that needs to know whether a level is configured goes
    through here; enabled-without-approvers is the same as disabled.
    """
    return bool(_get(level, "enabled", False)) and len(_get(level, "approvers", None) or []) > 0


def active_levels(config: Optional[Any]) -> list[str]:
    if not config:
        return []
    return [name for name in LEVELS if is_approval_level_active(_get(config, name))]


def flow_label(config: Optional[Any]) -> str:
    levels = [name.upper() for name in active_levels(config)]
    return " → ".join(levels) if levels else NOT_CONFIGURED


def first_active_level(config: Optional[Any]) -> Optional[str]:
    levels = active_levels(config)
    return levels[0] if levels else None


def approvers_for(config: Optional[Any], level: str) -> list:
    """Approvers of a level, or [] when the level is not active."""
    entry = _get(config, level)
    if not is_approval_level_active(entry):
        return []
    return list(_get(entry, "approvers"))
