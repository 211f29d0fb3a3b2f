"""
Per-view filter and sort preferences.

ViewPreferences is a plain value object; where it is kept is decided by the
PreferenceStore handed in. Losing preferences only resets filters, so an
unreadable stored value falls back to the defaults instead of failing.
"""

import logging
import uuid
from datetime import date
from typing import Literal, Optional, Protocol

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from opsportal.models.preference import ViewPreference
from opsportal.services.ticket_visibility import TicketFilters

logger = logging.getLogger(__name__)


class ViewPreferences(BaseModel):
    view: str = ""
    statuses: list[str] = []
    types: list[str] = []
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    age: str = "all"
    sort: str = ""
    direction: Literal["asc", "desc"] = "asc"

    def with_changes(self, **changes) -> "ViewPreferences":
        return ViewPreferences.model_validate({**self.model_dump(), **changes})

    def to_filters(self, search: str = "") -> TicketFilters:
        return TicketFilters(
            search=search,
            statuses=list(self.statuses),
            types=list(self.types),
            date_from=self.date_from,
            date_to=self.date_to,
            age=self.age,
            sort=self.sort,
            direction=self.direction,
        )


class PreferenceStore(Protocol):
    def load(self, view: str) -> Optional[dict]: ...

    def save(self, view: str, data: dict) -> None: ...


class InMemoryPreferenceStore:
    """Session-lifetime store, the equivalent of browser session storage."""

    def __init__(self):
        self._data: dict[str, dict] = {}

    def load(self, view: str) -> Optional[dict]:
        stored = self._data.get(view)
        return dict(stored) if stored is not None else None

    def save(self, view: str, data: dict) -> None:
        self._data[view] = dict(data)


class DatabasePreferenceStore:
    def __init__(self, db: Session, user_id: uuid.UUID):
        self.db = db
        self.user_id = user_id

    def _row(self, view: str) -> Optional[ViewPreference]:
        return self.db.query(ViewPreference).filter(
            ViewPreference.user_id == self.user_id,
            ViewPreference.view == view,
        ).first()

    def load(self, view: str) -> Optional[dict]:
        row = self._row(view)
        return dict(row.data) if row and row.data is not None else None

    def save(self, view: str, data: dict) -> None:
        row = self._row(view)
        if row is None:
            row = ViewPreference(user_id=self.user_id, view=view, data=data)
            self.db.add(row)
        else:
            row.data = data
        self.db.commit()


def load_preferences(store: PreferenceStore, view: str) -> ViewPreferences:
    raw = store.load(view)
    if not raw:
        return ViewPreferences(view=view)
    try:
        return ViewPreferences.model_validate({**raw, "view": view})
    except ValidationError as e:
        logger.warning("Discarding unreadable preferences for view %s: %s", view, e)
        return ViewPreferences(view=view)


def save_preferences(store: PreferenceStore, prefs: ViewPreferences) -> None:
    store.save(prefs.view, prefs.model_dump(mode="json", exclude={"view"}))
