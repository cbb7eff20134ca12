# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.database import Base
from app.utils.clock import utcnow


class UserUsageStat(Base):
    """Lifetime count of successful generations per user and request kind."""

    __tablename__ = "user_usage_stats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), index=True)
    usage_type = Column(String, index=True)  # "insight", "chat", "summary"

    count = Column(Integer, default=0)
    premium_count = Column(Integer, default=0)  # generations made on the premium model
    last_model = Column(String, nullable=True)

    first_used = Column(DateTime, default=utcnow)
    last_used = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="usage_stats")

    __table_args__ = (UniqueConstraint("user_id", "usage_type", name="uq_user_usage_type"),)

    def __repr__(self):
        return f"<UserUsageStat user={self.user_id} type={self.usage_type} count={self.count}>"
