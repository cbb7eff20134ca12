# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


from .user import User, AIStyle, SubscriptionTier
from .journal import JournalEntry
from .chat_message import ChatMessage
from .ai_insight import AIInsight
from .entry_summary import EntrySummary
from .user_usage_stat import UserUsageStat
