# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from fastapi import Request
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import RATE_LIMIT_ENABLED, REQUESTS_PER_MINUTE
from app.utils.clock import utcnow
from app.utils.tier_logic import select_daily_quota

logger = logging.getLogger(__name__)

QUOTA_WINDOW = timedelta(hours=24)


# ---------------------------
# ✅ Per-client HTTP burst limiter (slowapi)
# ---------------------------

def client_key(request: Request) -> str:
    """
    Keys requests by the bearer token's subject when present, else by IP.
    The signature is checked later by the auth dependency.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            sub = jwt.get_unverified_claims(auth_header.split(" ", 1)[1]).get("sub")
            if sub:
                return f"user:{sub}"
        except JWTError:
            pass
    return get_remote_address(request)


limiter = Limiter(key_func=client_key, enabled=RATE_LIMIT_ENABLED)
AI_REQUEST_RATE = REQUESTS_PER_MINUTE


# ---------------------------
# ✅ Daily AI quota (free tier)
# ---------------------------

@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: Optional[int]       # None = unlimited
    reset_at: Optional[datetime]   # None = never
    limit: Optional[int]           # None = unlimited


@dataclass
class _Counter:
    count: int
    window_start: datetime


class DailyQuotaLimiter:
    """
    Process-wide AI call counter per user over a rolling 24h window.

    Premium users always pass and never touch the counter map. Counters are
    in memory only, so a restart gives every free user a fresh window.
    """

    def __init__(
        self,
        quota: Optional[int] = None,
        window: timedelta = QUOTA_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.quota = quota if quota is not None else select_daily_quota(False)
        self.window = window
        self.clock = clock
        self._counters: Dict[str, _Counter] = {}
        self._lock = threading.Lock()

    def _current(self, user_id: str, now: datetime) -> _Counter:
        counter = self._counters.get(user_id)
        if counter is None or now >= counter.window_start + self.window:
            counter = _Counter(count=0, window_start=now)
            self._counters[user_id] = counter
        return counter

    def check_and_increment(self, user_id: str, is_premium: bool) -> RateLimitDecision:
        if is_premium:
            return RateLimitDecision(allowed=True, remaining=None, reset_at=None, limit=None)

        with self._lock:
            now = self.clock()
            counter = self._current(user_id, now)
            reset_at = counter.window_start + self.window

            if counter.count < self.quota:
                counter.count += 1
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.quota - counter.count,
                    reset_at=reset_at,
                    limit=self.quota,
                )

        logger.info(f"🚫 Daily AI quota reached for user {user_id} (resets {reset_at.isoformat()})")
        return RateLimitDecision(allowed=False, remaining=0, reset_at=reset_at, limit=self.quota)

    def status(self, user_id: str, is_premium: bool) -> RateLimitDecision:
        """
        Reports remaining calls without consuming one.
        """
        if is_premium:
            return RateLimitDecision(allowed=True, remaining=None, reset_at=None, limit=None)

        with self._lock:
            now = self.clock()
            counter = self._counters.get(user_id)
            if counter is None or now >= counter.window_start + self.window:
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.quota,
                    reset_at=now + self.window,
                    limit=self.quota,
                )
            remaining = max(0, self.quota - counter.count)
            return RateLimitDecision(
                allowed=remaining > 0,
                remaining=remaining,
                reset_at=counter.window_start + self.window,
                limit=self.quota,
            )

    def cleanup_expired(self) -> int:
        """
        Drops counters whose window has passed. Returns how many were removed.
        """
        with self._lock:
            now = self.clock()
            expired = [
                user_id for user_id, counter in self._counters.items()
                if now >= counter.window_start + self.window
            ]
            for user_id in expired:
                del self._counters[user_id]
        return len(expired)

    def tracked_users(self) -> int:
        with self._lock:
            return len(self._counters)


quota_limiter = DailyQuotaLimiter()
