# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import os

# ✅ Only load .env in local/dev
if os.environ.get("ENV") != "production":
    from dotenv import load_dotenv
    load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------
# ✅ Database
# ---------------------------

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./reflect.db")

# ---------------------------
# ✅ Anthropic / generation
# ---------------------------

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
FREE_MODEL = os.getenv("FREE_MODEL", "claude-3-5-haiku-20241022")
PREMIUM_MODEL = os.getenv("PREMIUM_MODEL", "claude-sonnet-4-5-20250929")
AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.7"))
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", "30"))
AI_RETRY_DELAY = float(os.getenv("AI_RETRY_DELAY", "1"))

# ---------------------------
# ✅ Quotas & HTTP throttling
# ---------------------------

FREE_DAILY_AI_LIMIT = int(os.getenv("FREE_DAILY_AI_LIMIT", "10"))
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
REQUESTS_PER_MINUTE = os.getenv("REQUESTS_PER_MINUTE", "20/minute")

# ---------------------------
# ✅ Background jobs
# ---------------------------

SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", True)
SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "UTC")

# Entry content ceilings accepted by the API
MAX_ENTRY_CHARS = 10000
MAX_SUMMARY_CHARS = 20000
