# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from app.models.ai_insight import AIInsight
from app.models.chat_message import ChatMessage
from app.models.journal import JournalEntry
from app.services.errors import (
    AIUnavailable,
    DuplicateJournalForDay,
    EntryNotFound,
    JournalError,
    QuotaExceeded,
    ValidationFailed,
)
from app.utils.rate_limit_utils import RateLimitDecision


def _iso(value):
    return value.isoformat() if value is not None else None


def serialize_entry(entry: JournalEntry) -> dict:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "content": entry.content,
        "title": entry.title,
        "mood_rating": entry.mood_rating,
        "tags": list(entry.tags or []),
        "entry_date": _iso(entry.entry_date),
        "created_at": _iso(entry.created_at),
        "updated_at": _iso(entry.updated_at),
    }


def serialize_message(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "journal_entry_id": message.journal_entry_id,
        "user_id": message.user_id,
        "role": message.role,
        "content": message.content,
        "timestamp": _iso(message.timestamp),
    }


def serialize_insight(insight: AIInsight) -> dict:
    return {
        "id": insight.id,
        "journal_entry_id": insight.journal_entry_id,
        "insight": insight.insight_text,
        "follow_up_question": insight.follow_up_question,
        "confidence": insight.confidence,
        "is_premium_generated": insight.is_premium_generated,
        "model": insight.model,
        "created_at": _iso(insight.created_at),
    }


def serialize_usage(decision: RateLimitDecision) -> dict:
    return {
        "limit": decision.limit,
        "remaining": decision.remaining,
        "reset_at": _iso(decision.reset_at),
        "is_premium": decision.limit is None,
    }


def serialize_error(error: JournalError) -> dict:
    body = {"error": error.__class__.__name__, "message": str(error), "code": error.code}
    if isinstance(error, QuotaExceeded):
        body.update({"limit": error.limit, "remaining": 0, "reset_at": _iso(error.reset_at)})
    return body


def error_status(error: JournalError) -> int:
    if isinstance(error, QuotaExceeded):
        return 429
    if isinstance(error, AIUnavailable):
        return 502
    if isinstance(error, EntryNotFound):
        return 404
    if isinstance(error, DuplicateJournalForDay):
        return 409
    if isinstance(error, ValidationFailed):
        return 400
    return 500


def quota_headers(limit, remaining, reset_at) -> dict:
    """X-RateLimit-* headers for AI responses; premium reports unlimited/never."""
    if limit is None:
        return {
            "X-RateLimit-Limit": "unlimited",
            "X-RateLimit-Remaining": "unlimited",
            "X-RateLimit-Reset": "never",
        }
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": _iso(reset_at) or "",
    }


def decision_headers(decision: RateLimitDecision) -> dict:
    return quota_headers(decision.limit, decision.remaining, decision.reset_at)


def error_headers(error: JournalError) -> dict:
    if isinstance(error, QuotaExceeded):
        return quota_headers(error.limit, 0, error.reset_at)
    return {}
