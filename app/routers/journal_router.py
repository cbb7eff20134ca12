# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging

from fastapi import APIRouter, Depends, Response

from app.auth import get_current_user_id, get_orchestrator
from app.schemas.journal_schemas import EntryCreateRequest, EntryUpdateRequest
from app.schemas.responses import (
    decision_headers,
    error_headers,
    serialize_entry,
    serialize_error,
    serialize_insight,
    serialize_message,
)
from app.services.errors import AIUnavailable, QuotaExceeded
from app.services.journal_orchestrator import JournalOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/entries", tags=["Journal"])


@router.post("", status_code=201)
def create_entry(
    payload: EntryCreateRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    entry = orchestrator.save_entry(
        user_id,
        payload.content,
        mood_rating=payload.mood_rating,
        tags=payload.tags,
        title=payload.title,
        entry_date=payload.entry_date,
    )
    result = {"entry": serialize_entry(entry), "insight": None, "insight_error": None}

    if not payload.generate_insight:
        return result

    # The entry is already saved; a missing insight never fails the request
    try:
        outcome = orchestrator.generate_initial_insight(entry)
        response.headers.update(decision_headers(outcome.quota))
        result["insight"] = serialize_insight(outcome.insight)
        result["message"] = serialize_message(outcome.message)
    except (QuotaExceeded, AIUnavailable) as e:
        logger.info(f"📝 Entry {entry.id} saved without insight: {e.__class__.__name__}")
        result["insight_error"] = serialize_error(e)
        response.headers.update(error_headers(e))
    return result


@router.get("/{entry_id}")
def get_entry(
    entry_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    entry = orchestrator.get_entry(user_id, entry_id)
    return {
        "entry": serialize_entry(entry),
        "state": orchestrator.conversation_state(entry.id).value,
    }


@router.patch("/{entry_id}")
def update_entry(
    entry_id: int,
    payload: EntryUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    entry = orchestrator.update_entry(
        user_id,
        entry_id,
        content=payload.content,
        mood_rating=payload.mood_rating,
        title=payload.title,
    )
    return {"entry": serialize_entry(entry)}


@router.get("/{entry_id}/messages")
def list_messages(
    entry_id: int,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    messages = orchestrator.get_chat_history(user_id, entry_id)
    return {"messages": [serialize_message(m) for m in messages]}
