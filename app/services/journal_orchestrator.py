# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

"""
Entry save -> initial insight -> threaded chat -> summary.

Every AI call goes through the same pipeline: daily quota check, prompt
build, tier-based model/token selection, generation with a single retry
for transient failures, then persistence. Nothing here holds durable
state; the store owns the data and the quota limiter owns the counters.
"""

import enum
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.config import AI_RETRY_DELAY
from app.models.ai_insight import AIInsight
from app.models.chat_message import ChatMessage
from app.models.entry_summary import EntrySummary
from app.models.journal import JOURNAL_TAG, NOTE_TAG, JournalEntry
from app.services.errors import (
    AuthFailure,
    ChatReplyUnavailable,
    DuplicateJournalForDay,
    EmptyContent,
    EmptyMessage,
    EntryNotFound,
    GenerationError,
    InsightUnavailable,
    InvalidMoodRating,
    JournalError,
    QuotaExceeded,
    SummaryUnavailable,
)
from app.services.ai_service import GenerationResult
from app.services.journal_store import JournalStore, UserPreferences
from app.utils.clock import utcnow
from app.utils.insight_parser import ParsedInsight, parse_insight
from app.utils.prompt_templates import (
    Prompt,
    build_chat_prompt,
    build_insight_prompt,
    build_summary_prompt,
)
from app.utils.rate_limit_utils import DailyQuotaLimiter, RateLimitDecision, quota_limiter
from app.utils.tier_logic import select_max_tokens, select_model
from app.utils.usage_tracker import track_usage_event

logger = logging.getLogger(__name__)

MAX_GENERATION_RETRIES = 1
_TICK = timedelta(microseconds=1)


class ConversationState(enum.Enum):
    created = "created"
    insight_pending = "insight_pending"
    insight_ready = "insight_ready"
    conversing = "conversing"
    summarized = "summarized"


@dataclass
class InsightOutcome:
    insight: AIInsight
    message: ChatMessage
    retries: int
    source: str
    model: str
    quota: Optional[RateLimitDecision] = None


@dataclass
class ChatExchange:
    user_message: ChatMessage
    assistant_message: Optional[ChatMessage] = None
    error: Optional[JournalError] = None
    client_temp_id: Optional[str] = None
    retries: int = 0
    quota: Optional[RateLimitDecision] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SummaryOutcome:
    text: str
    summary: EntrySummary
    source: str
    model: str
    quota: Optional[RateLimitDecision] = None


@dataclass
class _Generated:
    result: GenerationResult
    parsed: Optional[ParsedInsight]
    retries: int


class _KeyedLocks:
    """
    One lock per key, created on demand and dropped once no thread holds or
    waits on it. Unrelated keys never contend.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._slots = {}  # key -> [lock, holders]

    @contextmanager
    def hold(self, key):
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = [threading.Lock(), 0]
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._slots[key]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._slots)


# Process-wide: serializes chat sends per entry and journal saves per user
_locks = _KeyedLocks()

_pending_insights = set()
_pending_guard = threading.Lock()


def _normalize_tags(tags: Optional[Iterable[str]], mood_rating: Optional[int]) -> List[str]:
    cleaned = []
    for tag in tags or []:
        tag = (tag or "").strip().lower()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    if not cleaned:
        # Mood-rated entries are journals, everything else is a note
        cleaned = [JOURNAL_TAG] if mood_rating is not None else [NOTE_TAG]
    return cleaned


def _validate_mood(mood_rating: Optional[int]) -> None:
    if mood_rating is None:
        return
    if isinstance(mood_rating, bool) or not isinstance(mood_rating, int) or not 1 <= mood_rating <= 5:
        raise InvalidMoodRating(mood_rating)


class JournalOrchestrator:

    def __init__(
        self,
        store: JournalStore,
        generator,
        rate_limiter: DailyQuotaLimiter = quota_limiter,
        clock: Callable[[], datetime] = utcnow,
        retry_delay: float = AI_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.generator = generator
        self.rate_limiter = rate_limiter
        self.clock = clock
        self.retry_delay = retry_delay
        self.sleep = sleep

    # ---------------------------
    # Entries
    # ---------------------------

    def save_entry(
        self,
        user_id: str,
        content: str,
        mood_rating: Optional[int] = None,
        tags: Optional[Iterable[str]] = None,
        title: Optional[str] = None,
        entry_date: Optional[date] = None,
    ) -> JournalEntry:
        if content is None or not content.strip():
            raise EmptyContent()
        _validate_mood(mood_rating)

        tags = _normalize_tags(tags, mood_rating)
        day = entry_date or self.clock().date()

        with _locks.hold(("user", user_id)):
            if JOURNAL_TAG in tags:
                existing = self.store.get_entries_for_user_on_date(user_id, day, JOURNAL_TAG)
                if existing:
                    raise DuplicateJournalForDay(user_id, day)

            now = self.clock()
            entry = JournalEntry(
                user_id=user_id,
                content=content.strip(),
                title=(title or "").strip() or None,
                mood_rating=mood_rating,
                tags=tags,
                entry_date=day,
                created_at=now,
                updated_at=now,
            )
            entry = self.store.insert_entry(entry)

        logger.info(f"📝 Entry {entry.id} saved for user {user_id} ({', '.join(tags)}, {day.isoformat()})")
        return entry

    def update_entry(
        self,
        user_id: str,
        entry_id: int,
        content: Optional[str] = None,
        mood_rating: Optional[int] = None,
        title: Optional[str] = None,
    ) -> JournalEntry:
        entry = self._require_entry(entry_id, user_id)
        if content is not None:
            if not content.strip():
                raise EmptyContent()
            entry.content = content.strip()
        if mood_rating is not None:
            _validate_mood(mood_rating)
            entry.mood_rating = mood_rating
        if title is not None:
            entry.title = title.strip() or None
        entry.updated_at = self.clock()
        return self.store.update_entry(entry)

    # ---------------------------
    # Initial insight
    # ---------------------------

    def generate_initial_insight(
        self,
        entry: JournalEntry,
        user_preferences: Optional[UserPreferences] = None,
        recent_entries: Optional[Sequence] = None,
    ) -> InsightOutcome:
        prefs = user_preferences or self.store.get_user_preferences(entry.user_id)
        quota = self._consume_quota(entry.user_id, prefs)

        if recent_entries is None:
            recent_entries = self.store.get_recent_entries(entry.user_id, limit=3, exclude_id=entry.id)

        prompt = build_insight_prompt(
            entry.content,
            entry.mood_rating,
            recent_entries,
            prefs,
            prefs.is_premium,
            prefs.ai_style,
        )

        with _pending_guard:
            _pending_insights.add(entry.id)
        try:
            generated = self._generate(prompt, prefs, parse=parse_insight)
        except GenerationError as e:
            raise InsightUnavailable(e) from e
        finally:
            with _pending_guard:
                _pending_insights.discard(entry.id)

        parsed = generated.parsed
        with _locks.hold(("entry", entry.id)):
            history = self.store.get_messages_for_entry(entry.id)
            timestamp = self._next_timestamp(history[-1].timestamp if history else None)
            insight = AIInsight(
                journal_entry_id=entry.id,
                insight_text=parsed.insight_text,
                follow_up_question=parsed.follow_up_question,
                confidence=parsed.confidence,
                is_premium_generated=prefs.is_premium,
                model=generated.result.model,
                created_at=timestamp,
            )
            message = ChatMessage(
                journal_entry_id=entry.id,
                user_id=entry.user_id,
                role="assistant",
                content=parsed.insight_text,
                timestamp=timestamp,
            )
            insight, message = self.store.insert_insight_with_message(insight, message)

        self._record_usage(entry.user_id, prompt, generated, prefs)
        return InsightOutcome(
            insight=insight,
            message=message,
            retries=generated.retries,
            source=generated.result.source,
            model=generated.result.model,
            quota=quota,
        )

    # ---------------------------
    # Chat
    # ---------------------------

    def send_chat_message(
        self,
        user_id: str,
        entry_id: int,
        message_text: str,
        entry_content: Optional[str] = None,
        client_temp_id: Optional[str] = None,
    ) -> ChatExchange:
        """
        Persists the user's turn first; quota or generation failures come back
        on the exchange with the user message still saved.
        """
        if message_text is None or not message_text.strip():
            raise EmptyMessage()
        entry = self._require_entry(entry_id, user_id)

        # Held through generation: sends on one entry run one at a time, other entries are unaffected
        with _locks.hold(("entry", entry.id)):
            history = self.store.get_messages_for_entry(entry.id)
            user_message = self.store.insert_message(ChatMessage(
                journal_entry_id=entry.id,
                user_id=user_id,
                role="user",
                content=message_text.strip(),
                timestamp=self._next_timestamp(history[-1].timestamp if history else None),
            ))
            exchange = ChatExchange(user_message=user_message, client_temp_id=client_temp_id)

            prefs = self.store.get_user_preferences(user_id)
            try:
                exchange.quota = self._consume_quota(user_id, prefs)
            except QuotaExceeded as e:
                exchange.error = e
                return exchange

            prompt = build_chat_prompt(
                entry_content if entry_content is not None else entry.content,
                history,
                user_message.content,
                prefs,
                prefs.ai_style,
            )
            try:
                generated = self._generate(prompt, prefs)
            except GenerationError as e:
                exchange.error = ChatReplyUnavailable(e)
                return exchange

            exchange.retries = generated.retries
            exchange.assistant_message = self.store.insert_message(ChatMessage(
                journal_entry_id=entry.id,
                user_id=user_id,
                role="assistant",
                content=generated.result.text,
                timestamp=self._next_timestamp(user_message.timestamp),
            ))

        self._record_usage(user_id, prompt, generated, prefs)
        return exchange

    def get_entry(self, user_id: str, entry_id: int) -> JournalEntry:
        return self._require_entry(entry_id, user_id)

    def get_chat_history(self, user_id: str, entry_id: int) -> List[ChatMessage]:
        entry = self._require_entry(entry_id, user_id)
        return self.store.get_messages_for_entry(entry.id)

    # ---------------------------
    # Summary
    # ---------------------------

    def generate_summary(
        self,
        entry_id: int,
        entry_content: Optional[str] = None,
        chat_history: Optional[Sequence] = None,
        user_id: Optional[str] = None,
    ) -> SummaryOutcome:
        entry = self._require_entry(entry_id, user_id)
        content = entry_content if entry_content is not None else entry.content
        if not content or not content.strip():
            raise EmptyContent()
        if chat_history is None:
            chat_history = self.store.get_messages_for_entry(entry.id)

        prefs = self.store.get_user_preferences(entry.user_id)
        quota = self._consume_quota(entry.user_id, prefs)

        prompt = build_summary_prompt(content.strip(), chat_history, prefs.ai_style)
        try:
            generated = self._generate(prompt, prefs)
        except GenerationError as e:
            raise SummaryUnavailable(e) from e

        summary = self.store.upsert_summary(entry.id, entry.user_id, generated.result.text)
        self._record_usage(entry.user_id, prompt, generated, prefs)
        return SummaryOutcome(
            text=generated.result.text,
            summary=summary,
            source=generated.result.source,
            model=generated.result.model,
            quota=quota,
        )

    # ---------------------------
    # State & quota
    # ---------------------------

    def conversation_state(self, entry_id: int) -> ConversationState:
        with _pending_guard:
            if entry_id in _pending_insights:
                return ConversationState.insight_pending
        if self.store.get_summary(entry_id) is not None:
            return ConversationState.summarized
        if self.store.count_user_messages(entry_id) > 0:
            return ConversationState.conversing
        if self.store.get_insights_for_entry(entry_id):
            return ConversationState.insight_ready
        return ConversationState.created

    def usage_status(self, user_id: str) -> RateLimitDecision:
        prefs = self.store.get_user_preferences(user_id)
        return self.rate_limiter.status(user_id, prefs.is_premium)

    # ---------------------------
    # Internals
    # ---------------------------

    def _require_entry(self, entry_id: int, user_id: Optional[str]) -> JournalEntry:
        entry = self.store.get_entry(entry_id, user_id)
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    def _consume_quota(self, user_id: str, prefs: UserPreferences) -> RateLimitDecision:
        decision = self.rate_limiter.check_and_increment(user_id, prefs.is_premium)
        if not decision.allowed:
            raise QuotaExceeded(reset_at=decision.reset_at, limit=decision.limit)
        return decision

    def _record_usage(self, user_id: str, prompt: Prompt, generated: _Generated, prefs: UserPreferences) -> None:
        # The generated reply is already persisted; analytics must not fail the request
        try:
            track_usage_event(self.store.db, user_id, prompt.kind.value, generated.result.model, prefs.is_premium)
        except SQLAlchemyError as e:
            self.store.db.rollback()
            logger.error(f"📊 Usage tracking failed for {user_id} ({prompt.kind.value}): {e}", exc_info=True)

    def _next_timestamp(self, last: Optional[datetime]) -> datetime:
        now = self.clock()
        if last is not None and now <= last:
            now = last + _TICK
        return now

    def _generate(self, prompt: Prompt, prefs: UserPreferences, parse=None) -> _Generated:
        model = select_model(prefs.is_premium)
        max_tokens = select_max_tokens(prefs.is_premium, prompt.kind)
        tier = prefs.subscription_status.value
        retries = 0

        while True:
            start = time.monotonic()
            try:
                result = self.generator.generate(prompt, model, max_tokens)
                parsed = parse(result.text) if parse else None
            except GenerationError as e:
                duration = round(time.monotonic() - start, 2)
                if e.retryable and retries < MAX_GENERATION_RETRIES:
                    retries += 1
                    logger.warning(
                        f"⚠️ {prompt.kind.value} generation failed ({e.__class__.__name__}) "
                        f"after {duration}s, retrying ({retries}/{MAX_GENERATION_RETRIES})"
                    )
                    if self.retry_delay:
                        self.sleep(self.retry_delay)
                    continue
                if isinstance(e, AuthFailure):
                    logger.error(f"❌ Generation auth failure - check ANTHROPIC_API_KEY: {e}")
                else:
                    logger.warning(f"❌ {prompt.kind.value} generation failed for {tier} user: {e.__class__.__name__}: {e}")
                raise

            duration = round(time.monotonic() - start, 2)
            logger.info(
                f"🤖 {prompt.kind.value} generated: tier={tier} model={result.model} "
                f"source={result.source} duration={duration}s retries={retries}"
            )
            return _Generated(result=result, parsed=parsed, retries=retries)
