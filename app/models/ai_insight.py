# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from sqlalchemy import Column, Integer, Float, Boolean, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.models.database import Base
from app.utils.clock import utcnow
from app.utils.encryption import EncryptedText


class AIInsight(Base):
    __tablename__ = "ai_insights"

    id = Column(Integer, primary_key=True, index=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False, index=True)

    insight_text = Column(EncryptedText, nullable=False)
    follow_up_question = Column(EncryptedText, nullable=True)
    confidence = Column(Float, default=0.85)
    is_premium_generated = Column(Boolean, default=False)
    model = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    entry = relationship("JournalEntry", back_populates="insights")
