# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


from sqlalchemy import Column, String, DateTime, Enum, JSON
from sqlalchemy.orm import relationship
from app.models.database import Base
from app.utils.clock import utcnow
import enum


class SubscriptionTier(enum.Enum):
    free = "free"
    premium = "premium"


class AIStyle(enum.Enum):
    coach = "coach"
    reflector = "reflector"


class User(Base):
    __tablename__ = "users"

    # Auth provider user id (JWT "sub")
    id = Column(String, primary_key=True, index=True)

    # ✅ AI preferences
    ai_style = Column(Enum(AIStyle), default=AIStyle.reflector, nullable=False)
    subscription_status = Column(Enum(SubscriptionTier), default=SubscriptionTier.free, nullable=False)
    focus_areas = Column(JSON, default=list)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # ✅ Relationships
    journal_entries = relationship("JournalEntry", back_populates="user", cascade="all, delete-orphan")
    usage_stats = relationship("UserUsageStat", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User id={self.id} tier={self.subscription_status.value} style={self.ai_style.value}>"
