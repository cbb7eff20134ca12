# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from app.models.database import Base
from app.utils.clock import utcnow
from app.utils.encryption import EncryptedText  # 🔐 Encryption utils

JOURNAL_TAG = "journal"
NOTE_TAG = "note"


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)

    content = Column(EncryptedText, nullable=False)  # 🔐 Encrypted
    title = Column(String, nullable=True)
    mood_rating = Column(Integer, nullable=True)  # 1-5
    tags = Column(JSON, nullable=False, default=list)  # e.g. ["journal"], ["note", "work"]

    # Calendar day the entry belongs to (one journal-tagged entry per day)
    entry_date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="journal_entries")
    messages = relationship("ChatMessage", back_populates="entry", cascade="all, delete-orphan")
    insights = relationship("AIInsight", back_populates="entry", cascade="all, delete-orphan")
    summary = relationship("EntrySummary", back_populates="entry", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_journal_user_date", "user_id", "entry_date"),
    )

    def __repr__(self):
        return f"<JournalEntry id={self.id} user={self.user_id} date={self.entry_date} tags={self.tags}>"
