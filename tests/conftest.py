# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import os
from datetime import datetime, timedelta

from cryptography.fernet import Fernet

# Configure before any app module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["FERNET_SECRET"] = Fernet.generate_key().decode()
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["AI_RETRY_DELAY"] = "0"
os.environ.pop("ANTHROPIC_API_KEY", None)

import pytest  # noqa: E402

from app.models import database  # noqa: E402
from app.models import *  # noqa: E402,F401,F403
from app.services.ai_service import GenerationResult  # noqa: E402
from app.services.journal_orchestrator import JournalOrchestrator  # noqa: E402
from app.services.journal_store import JournalStore  # noqa: E402
from app.utils.rate_limit_utils import DailyQuotaLimiter  # noqa: E402

INSIGHT_JSON = (
    '{"insight": "Hard days at work often point to what you care about.", '
    '"followUpQuestion": "What part of the day weighed on you most?", "confidence": 0.9}'
)


class FakeClock:
    def __init__(self, start=datetime(2025, 3, 10, 9, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeGenerator:
    """
    Replays scripted replies in order. A scripted exception is raised instead
    of returned. With nothing scripted it answers with `default`.
    """

    source = "fake"

    def __init__(self, default=INSIGHT_JSON):
        self.default = default
        self.script = []
        self.calls = []

    def queue(self, *items):
        self.script.extend(items)

    def generate(self, prompt, model, max_tokens):
        self.calls.append({"prompt": prompt, "model": model, "max_tokens": max_tokens})
        item = self.script.pop(0) if self.script else self.default
        if isinstance(item, Exception):
            raise item
        return GenerationResult(text=item, model=model, source=self.source)


@pytest.fixture
def db():
    database.Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()
        database.Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def limiter(clock):
    return DailyQuotaLimiter(quota=10, clock=clock)


@pytest.fixture
def store(db):
    return JournalStore(db)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def orchestrator(store, generator, limiter, clock, sleeps):
    return JournalOrchestrator(
        store,
        generator,
        rate_limiter=limiter,
        clock=clock,
        retry_delay=1.5,
        sleep=sleeps.append,
    )
