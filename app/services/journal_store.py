# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.ai_insight import AIInsight
from app.models.chat_message import ChatMessage
from app.models.entry_summary import EntrySummary
from app.models.journal import JournalEntry
from app.models.user import AIStyle, SubscriptionTier, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserPreferences:
    user_id: str
    ai_style: AIStyle = AIStyle.reflector
    subscription_status: SubscriptionTier = SubscriptionTier.free
    focus_areas: List[str] = field(default_factory=list)

    @property
    def is_premium(self) -> bool:
        return self.subscription_status == SubscriptionTier.premium


class JournalStore:
    """
    Data access for entries, chat messages, insights, summaries and user
    preferences. Database errors propagate to the caller unchanged.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------------------------
    # Users & preferences
    # ---------------------------

    def get_or_create_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            user = User(id=user_id, ai_style=AIStyle.reflector, subscription_status=SubscriptionTier.free, focus_areas=[])
            self.db.add(user)
            self.db.flush()
        return user

    def get_user_preferences(self, user_id: str) -> UserPreferences:
        user = self.db.get(User, user_id)
        if user is None:
            return UserPreferences(user_id=user_id)
        return UserPreferences(
            user_id=user.id,
            ai_style=user.ai_style or AIStyle.reflector,
            subscription_status=user.subscription_status or SubscriptionTier.free,
            focus_areas=list(user.focus_areas or []),
        )

    def update_ai_style(self, user_id: str, ai_style: AIStyle) -> UserPreferences:
        user = self.get_or_create_user(user_id)
        user.ai_style = AIStyle(ai_style)
        self.db.commit()
        logger.info(f"Updated AI style for user {user_id}: {user.ai_style.value}")
        return self.get_user_preferences(user_id)

    def set_subscription_status(self, user_id: str, status: SubscriptionTier) -> UserPreferences:
        user = self.get_or_create_user(user_id)
        user.subscription_status = SubscriptionTier(status)
        self.db.commit()
        return self.get_user_preferences(user_id)

    # ---------------------------
    # Entries
    # ---------------------------

    def insert_entry(self, entry: JournalEntry) -> JournalEntry:
        self.get_or_create_user(entry.user_id)
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def update_entry(self, entry: JournalEntry) -> JournalEntry:
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_entry(self, entry_id: int, user_id: Optional[str] = None) -> Optional[JournalEntry]:
        query = self.db.query(JournalEntry).filter(JournalEntry.id == entry_id)
        if user_id is not None:
            query = query.filter(JournalEntry.user_id == user_id)
        return query.first()

    def get_entries_for_user_on_date(self, user_id: str, day: date, tag_filter: Optional[str] = None) -> List[JournalEntry]:
        entries = (
            self.db.query(JournalEntry)
            .filter(JournalEntry.user_id == user_id, JournalEntry.entry_date == day)
            .order_by(JournalEntry.created_at)
            .all()
        )
        # Tags live in a JSON column; filter in Python to stay dialect-neutral
        if tag_filter is not None:
            entries = [e for e in entries if tag_filter in (e.tags or [])]
        return entries

    def get_recent_entries(self, user_id: str, limit: int = 3, exclude_id: Optional[int] = None) -> List[JournalEntry]:
        query = self.db.query(JournalEntry).filter(JournalEntry.user_id == user_id)
        if exclude_id is not None:
            query = query.filter(JournalEntry.id != exclude_id)
        return query.order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc()).limit(limit).all()

    # ---------------------------
    # Chat messages
    # ---------------------------

    def insert_message(self, message: ChatMessage) -> ChatMessage:
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def get_messages_for_entry(self, entry_id: int) -> List[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.journal_entry_id == entry_id)
            .order_by(ChatMessage.timestamp, ChatMessage.id)
            .all()
        )

    def count_user_messages(self, entry_id: int) -> int:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.journal_entry_id == entry_id, ChatMessage.role == "user")
            .count()
        )

    # ---------------------------
    # Insights & summaries
    # ---------------------------

    def insert_insight_with_message(self, insight: AIInsight, message: ChatMessage):
        """
        Writes the insight record and its chat-thread copy in one transaction.
        """
        try:
            self.db.add_all([insight, message])
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(insight)
        self.db.refresh(message)
        return insight, message

    def get_insights_for_entry(self, entry_id: int) -> List[AIInsight]:
        return (
            self.db.query(AIInsight)
            .filter(AIInsight.journal_entry_id == entry_id)
            .order_by(AIInsight.created_at, AIInsight.id)
            .all()
        )

    def upsert_summary(self, entry_id: int, user_id: str, summary_text: str) -> EntrySummary:
        summary = self.get_summary(entry_id)
        if summary is None:
            summary = EntrySummary(journal_entry_id=entry_id, user_id=user_id, summary_content=summary_text)
            self.db.add(summary)
        else:
            summary.summary_content = summary_text
        self.db.commit()
        self.db.refresh(summary)
        return summary

    def get_summary(self, entry_id: int) -> Optional[EntrySummary]:
        return self.db.query(EntrySummary).filter(EntrySummary.journal_entry_id == entry_id).first()
