# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.models.database import Base
from app.utils.clock import utcnow
from app.utils.encryption import EncryptedText


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    role = Column(String, nullable=False)  # 'user' or 'assistant'

    content = Column(EncryptedText, nullable=False)  # 🔐 Encrypted

    timestamp = Column(DateTime, default=utcnow, index=True)

    entry = relationship("JournalEntry", back_populates="messages")

    __table_args__ = (
        Index("ix_chat_entry_timestamp", "journal_entry_id", "timestamp"),
    )
