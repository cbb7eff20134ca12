# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


import logging

from app.utils.rate_limit_utils import DailyQuotaLimiter, quota_limiter

logger = logging.getLogger("cleanup")


def clean_expired_quota_counters(limiter: DailyQuotaLimiter = quota_limiter) -> int:
    """
    Drops per-user AI quota counters whose 24h window has passed.
    """
    removed = limiter.cleanup_expired()
    logger.info(f"🗑️ Removed {removed} expired quota counters, {limiter.tracked_users()} still tracked.")
    return removed
