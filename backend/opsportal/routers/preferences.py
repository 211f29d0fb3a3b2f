"""View preferences router (filters and sort order per dashboard view)."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from opsportal.database import get_db
from opsportal.dependencies import get_current_user_id
from opsportal.services.view_preferences import (
    DatabasePreferenceStore,
    ViewPreferences,
    load_preferences,
    save_preferences,
)

router = APIRouter(prefix="/api/v1/preferences", tags=["Preferences"])


@router.get("/{view}", response_model=ViewPreferences)
def get_preferences(
    view: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return load_preferences(DatabasePreferenceStore(db, user_id), view)


@router.put("/{view}", response_model=ViewPreferences)
def put_preferences(
    view: str,
    body: ViewPreferences,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    prefs = body.with_changes(view=view)
    save_preferences(DatabasePreferenceStore(db, user_id), prefs)
    return prefs
