# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


from fastapi import APIRouter, Depends

from app.auth import get_current_user_id, get_store
from app.schemas.user_schemas import AIStyleUpdateRequest
from app.services.journal_store import JournalStore, UserPreferences

router = APIRouter(prefix="/users/me", tags=["Preferences"])


def _preferences_body(prefs: UserPreferences) -> dict:
    return {
        "user_id": prefs.user_id,
        "ai_style": prefs.ai_style.value,
        "subscription_status": prefs.subscription_status.value,
        "focus_areas": prefs.focus_areas,
    }


@router.get("/ai-style")
def get_ai_style(
    user_id: str = Depends(get_current_user_id),
    store: JournalStore = Depends(get_store),
):
    return _preferences_body(store.get_user_preferences(user_id))


@router.put("/ai-style")
def update_ai_style(
    payload: AIStyleUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    store: JournalStore = Depends(get_store),
):
    return _preferences_body(store.update_ai_style(user_id, payload.ai_style))
