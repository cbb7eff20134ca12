# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import datetime
from typing import Optional


# ---------------------------
# Generation client failures
# ---------------------------

class GenerationError(Exception):
    """Upstream generation failed. The base class is never retried."""

    retryable = False

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message or self.__class__.__name__)
        self.status_code = status_code


class AuthFailure(GenerationError):
    """Bad or missing provider credentials. Operator problem, not user-fixable."""


class RateLimited(GenerationError):
    retryable = True


class GenerationTimeout(GenerationError):
    retryable = True


class InvalidResponse(GenerationError):
    retryable = True


# ---------------------------
# Orchestrator failures
# ---------------------------

class JournalError(Exception):
    code = "JOURNAL_ERROR"


class ValidationFailed(JournalError):
    code = "VALIDATION_ERROR"


class EmptyContent(ValidationFailed):
    def __init__(self):
        super().__init__("Journal content is required")


class EmptyMessage(ValidationFailed):
    def __init__(self):
        super().__init__("Message cannot be empty")


class InvalidMoodRating(ValidationFailed):
    def __init__(self, mood_rating):
        super().__init__(f"Mood rating must be between 1 and 5, got {mood_rating}")
        self.mood_rating = mood_rating


class DuplicateJournalForDay(ValidationFailed):
    code = "DUPLICATE_JOURNAL_FOR_DAY"

    def __init__(self, user_id: str, day):
        super().__init__(f"A journal entry already exists for {day.isoformat()}")
        self.user_id = user_id
        self.day = day


class EntryNotFound(JournalError):
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id):
        super().__init__(f"Journal entry {entry_id} not found")
        self.entry_id = entry_id


class QuotaExceeded(JournalError):
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, reset_at: Optional[datetime], limit: Optional[int]):
        super().__init__(
            f"You've reached your daily limit of {limit} AI interactions. "
            "Upgrade to Premium for unlimited access."
        )
        self.reset_at = reset_at
        self.limit = limit


class AIUnavailable(JournalError):
    code = "AI_SERVICE_ERROR"

    def __init__(self, message: str, cause: GenerationError):
        super().__init__(message)
        self.cause = cause


class InsightUnavailable(AIUnavailable):
    code = "INSIGHT_GENERATION_FAILED"

    def __init__(self, cause: GenerationError):
        super().__init__("Insight unavailable right now. Your entry is still saved.", cause)


class ChatReplyUnavailable(AIUnavailable):
    code = "CHAT_GENERATION_FAILED"

    def __init__(self, cause: GenerationError):
        super().__init__("I'm having trouble responding right now. Please try again in a moment.", cause)


class SummaryUnavailable(AIUnavailable):
    code = "SUMMARY_GENERATION_FAILED"

    def __init__(self, cause: GenerationError):
        super().__init__("Failed to generate summary. Please try again.", cause)
