"""
IT admin ticket visibility and the derived dashboard views.

Everything here is a pure function over a ticket snapshot. Tickets only
need attribute access (ORM rows work), and missing fields never raise:
they block visibility and sort last.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Optional

IT_ADMIN_ROLES = ("it_admin", "super_admin")

UNASSIGNED_STATUSES = ("open", "pending", "Reopened", "In Queue", "Routed", "Approved")
ASSIGNED_STATUSES = ("Assigned", "In Progress", "Completed", "Confirmed", "Closed", "Auto-Closed", "Cancelled")
CLOSED_STATUSES = ("Completed", "Confirmed", "Closed", "Auto-Closed", "Cancelled")

URGENCY_RANK = {"Critical": 0, "High": 1, "Medium": 2, "Low": 3}

AGE_FILTERS = ("all", "under-24h", "1-3days", "over-3days", "under-1week", "over-1week")


@dataclass
class TicketFilters:
    search: str = ""
    statuses: list = field(default_factory=list)
    types: list = field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    age: str = "all"
    sort: str = ""
    direction: str = "asc"


# ── gate ──

def is_it_visible(ticket) -> bool:
    module = getattr(ticket, "module", None) or getattr(ticket, "high_level_category", None)
    if module != "IT":
        return False
    if getattr(ticket, "requires_approval", False) and not getattr(ticket, "approval_completed", False):
        return False
    return getattr(ticket, "routed_to", None) == "IT"


def visible_tickets(tickets: Iterable, role: Optional[str]) -> list:
    """Tickets an IT admin may see and act on. Any other role sees nothing."""
    if role not in IT_ADMIN_ROLES:
        return []
    return [t for t in tickets if is_it_visible(t)]


# ── field helpers ──

def _assignment(ticket) -> dict:
    return getattr(ticket, "assignment", None) or {}


def is_assigned(ticket) -> bool:
    return bool(_assignment(ticket).get("assigned_to_id"))


def _as_utc(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def ticket_age_hours(ticket, now: Optional[datetime] = None) -> float:
    created = _as_utc(getattr(ticket, "created_at", None))
    if created is None:
        return 0.0
    now = _as_utc(now) or datetime.now(timezone.utc)
    return (now - created).total_seconds() / 3600


def _text(value) -> str:
    return (value or "").casefold()


def _matches(ticket, query: str, fields: tuple) -> bool:
    q = query.strip().casefold()
    if not q:
        return True
    for name in fields:
        if name == "assigned_to_name":
            value = _assignment(ticket).get("assigned_to_name")
        else:
            value = getattr(ticket, name, None)
        if q in _text(value):
            return True
    return False


def _sorted(tickets: list, key, direction: str) -> list:
    """Stable sort; unknown values sort last in either direction."""
    known = [t for t in tickets if key(t) is not None]
    unknown = [t for t in tickets if key(t) is None]
    return sorted(known, key=key, reverse=direction == "desc") + unknown


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _created(ticket) -> Optional[datetime]:
    return _as_utc(getattr(ticket, "created_at", None))


# ── views ──

_BASE_SEARCH = ("ticket_number", "subject", "user_name", "sub_category")


def unassigned_view(tickets: Iterable, filters: TicketFilters) -> list:
    rows = [t for t in tickets if not is_assigned(t) and getattr(t, "status", None) in UNASSIGNED_STATUSES]
    rows = [t for t in rows if _matches(t, filters.search, _BASE_SEARCH)]

    sort = filters.sort or "urgency"
    if sort == "urgency":
        key = lambda t: URGENCY_RANK.get(getattr(t, "urgency", None))
    elif sort == "created_at":
        key = _created
    elif sort in ("ticket_number", "subject"):
        key = lambda t: _text(getattr(t, sort, None)) or None
    else:
        return rows
    return _sorted(rows, key, filters.direction)


def assigned_view(tickets: Iterable, filters: TicketFilters, admin_id: str, admin_name: Optional[str] = None) -> list:
    """Tickets this admin assigned, including finished ones for reference."""
    def mine(t) -> bool:
        a = _assignment(t)
        if not a.get("assigned_to_id"):
            return False
        return a.get("assigned_by") == admin_id or (admin_name and a.get("assigned_by_name") == admin_name)

    rows = [t for t in tickets if mine(t) and getattr(t, "status", None) in ASSIGNED_STATUSES]
    if filters.statuses:
        rows = [t for t in rows if getattr(t, "status", None) in filters.statuses]
    if filters.types:
        rows = [t for t in rows if getattr(t, "sub_category", None) in filters.types]
    rows = [t for t in rows if _matches(t, filters.search, _BASE_SEARCH + ("assigned_to_name", "status"))]

    sort = filters.sort or "assigned_at"
    if sort == "assigned_at":
        key = lambda t: _as_utc(_assignment(t).get("assigned_at")) or _created(t)
    elif sort in ("status", "ticket_number"):
        key = lambda t: _text(getattr(t, sort, None)) or None
    else:
        return rows
    return _sorted(rows, key, filters.direction)


def _age_ok(hours: float, age: str) -> bool:
    if age == "under-24h":
        return hours < 24
    if age == "1-3days":
        return 24 <= hours <= 72
    if age == "over-3days":
        return hours > 72
    if age == "under-1week":
        return hours < 168
    if age == "over-1week":
        return hours >= 168
    return True


def all_tickets_view(tickets: Iterable, filters: TicketFilters, now: Optional[datetime] = None) -> list:
    rows = list(tickets)
    if filters.statuses:
        rows = [t for t in rows if getattr(t, "status", None) in filters.statuses]
    if filters.types:
        rows = [t for t in rows if getattr(t, "sub_category", None) in filters.types]
    if filters.date_from:
        rows = [t for t in rows if _created(t) and _created(t).date() >= filters.date_from]
    if filters.date_to:
        rows = [t for t in rows if _created(t) and _created(t).date() <= filters.date_to]
    if filters.age and filters.age != "all":
        rows = [t for t in rows if _age_ok(ticket_age_hours(t, now), filters.age)]
    rows = [
        t for t in rows
        if _matches(t, filters.search, _BASE_SEARCH + ("assigned_to_name", "status", "user_email"))
    ]

    # age-newest == newest and age-oldest == oldest once ages come from one clock
    sort = filters.sort or "newest"
    if sort in ("oldest", "age-oldest"):
        return _sorted(rows, _created, "asc")
    return _sorted(rows, _created, "desc")


def closed_view(tickets: Iterable) -> list:
    rows = [t for t in tickets if getattr(t, "status", None) in CLOSED_STATUSES]
    return sorted(
        rows,
        key=lambda t: _as_utc(getattr(t, "updated_at", None)) or _created(t) or _EPOCH,
        reverse=True,
    )


def ticket_stats(tickets: Iterable) -> dict:
    tickets = list(tickets)
    statuses = [getattr(t, "status", None) for t in tickets]
    return {
        "total": len(tickets),
        "unassigned": sum(1 for t in tickets if not is_assigned(t) and getattr(t, "status", None) in UNASSIGNED_STATUSES),
        "assigned": sum(1 for t in tickets if is_assigned(t) and getattr(t, "status", None) == "Assigned"),
        "in_progress": statuses.count("In Progress"),
        "reopened": statuses.count("Reopened"),
        "closed": sum(1 for s in statuses if s in CLOSED_STATUSES),
    }


def distinct_values(tickets: Iterable, attr: str) -> list[str]:
    return sorted({v for v in (getattr(t, attr, None) for t in tickets) if v})
