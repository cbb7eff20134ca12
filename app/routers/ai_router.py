# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.auth import get_current_user_id, get_orchestrator
from app.schemas.ai_schemas import ChatRequest, InsightRequest, SummaryRequest
from app.schemas.responses import (
    decision_headers,
    error_headers,
    error_status,
    serialize_error,
    serialize_insight,
    serialize_message,
    serialize_usage,
)
from app.services.journal_orchestrator import JournalOrchestrator
from app.utils.rate_limit_utils import AI_REQUEST_RATE, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["AI"])


# ✅ Initial insight for a saved entry
@router.post("/insight")
@limiter.limit(AI_REQUEST_RATE)
def create_insight(
    request: Request,
    response: Response,
    payload: InsightRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    entry = orchestrator.get_entry(user_id, payload.entry_id)
    outcome = orchestrator.generate_initial_insight(entry)
    response.headers.update(decision_headers(outcome.quota))
    return {
        "insight": serialize_insight(outcome.insight),
        "message": serialize_message(outcome.message),
        "source": outcome.source,
        "model": outcome.model,
    }


# ✅ Threaded chat on an entry
@router.post("/chat")
@limiter.limit(AI_REQUEST_RATE)
def chat(
    request: Request,
    response: Response,
    payload: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    exchange = orchestrator.send_chat_message(
        user_id,
        payload.entry_id,
        payload.message,
        entry_content=payload.entry_content,
        client_temp_id=payload.client_temp_id,
    )
    body = {
        "user_message": serialize_message(exchange.user_message),
        "client_temp_id": exchange.client_temp_id,
    }

    # The user's turn is saved either way; the client keeps it and shows the error
    if not exchange.ok:
        body.update(serialize_error(exchange.error))
        headers = decision_headers(exchange.quota) if exchange.quota else error_headers(exchange.error)
        return JSONResponse(status_code=error_status(exchange.error), content=body, headers=headers)

    response.headers.update(decision_headers(exchange.quota))
    body["message"] = serialize_message(exchange.assistant_message)
    return body


# ✅ End-of-conversation summary
@router.post("/summarise")
@limiter.limit(AI_REQUEST_RATE)
def summarise(
    request: Request,
    response: Response,
    payload: SummaryRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    outcome = orchestrator.generate_summary(
        payload.entry_id,
        entry_content=payload.entry_content,
        chat_history=payload.conversation_history,
        user_id=user_id,
    )
    response.headers.update(decision_headers(outcome.quota))
    return {
        "summary": outcome.text,
        "entry_id": outcome.summary.journal_entry_id,
        "source": outcome.source,
        "model": outcome.model,
    }


@router.get("/usage")
def usage(
    user_id: str = Depends(get_current_user_id),
    orchestrator: JournalOrchestrator = Depends(get_orchestrator),
):
    return serialize_usage(orchestrator.usage_status(user_id))
