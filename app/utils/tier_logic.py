# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


import enum
from typing import Optional

from app.config import FREE_DAILY_AI_LIMIT, FREE_MODEL, PREMIUM_MODEL
from app.models.user import SubscriptionTier


class RequestKind(enum.Enum):
    insight = "insight"
    chat = "chat"
    summary = "summary"


# Output token ceilings per request kind and tier
MAX_TOKENS = {
    RequestKind.insight: {SubscriptionTier.free: 300, SubscriptionTier.premium: 500},
    RequestKind.chat: {SubscriptionTier.free: 250, SubscriptionTier.premium: 400},
    RequestKind.summary: {SubscriptionTier.free: 100, SubscriptionTier.premium: 150},
}
DEFAULT_MAX_TOKENS = 300

# None means no daily cap
UNLIMITED = None


def tier_for(is_premium: bool) -> SubscriptionTier:
    return SubscriptionTier.premium if is_premium else SubscriptionTier.free


def select_model(is_premium: bool) -> str:
    """
    Returns the model identifier for the tier: premium gets the larger model.
    """
    tier = tier_for(is_premium)
    if tier == SubscriptionTier.premium:
        return PREMIUM_MODEL
    if tier == SubscriptionTier.free:
        return FREE_MODEL
    raise ValueError(f"Unhandled subscription tier: {tier}")


def select_max_tokens(is_premium: bool, request_kind) -> int:
    """
    Returns the max output tokens for a request kind ("insight", "chat", "summary").
    Unknown kinds fall back to DEFAULT_MAX_TOKENS.
    """
    try:
        kind = RequestKind(request_kind) if not isinstance(request_kind, RequestKind) else request_kind
    except ValueError:
        return DEFAULT_MAX_TOKENS
    return MAX_TOKENS[kind][tier_for(is_premium)]


def select_daily_quota(is_premium: bool) -> Optional[int]:
    """
    Returns the daily AI call quota, or UNLIMITED for premium users.
    """
    tier = tier_for(is_premium)
    if tier == SubscriptionTier.premium:
        return UNLIMITED
    if tier == SubscriptionTier.free:
        return FREE_DAILY_AI_LIMIT
    raise ValueError(f"Unhandled subscription tier: {tier}")
