# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from fastapi import Depends
from sqlalchemy.orm import Session

from app.models.database import SessionLocal
from app.services.ai_service import get_generation_client
from app.services.journal_orchestrator import JournalOrchestrator
from app.services.journal_store import JournalStore
from app.utils.auth_utils import require_token
from app.utils.rate_limit_utils import quota_limiter

_generator = None


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_generator():
    global _generator
    if _generator is None:
        _generator = get_generation_client()
    return _generator


def get_current_user_id(user_data: dict = Depends(require_token)) -> str:
    return str(user_data["sub"])


def get_store(db: Session = Depends(get_db)) -> JournalStore:
    return JournalStore(db)


def get_orchestrator(
    store: JournalStore = Depends(get_store),
    generator=Depends(get_generator),
) -> JournalOrchestrator:
    return JournalOrchestrator(store, generator, rate_limiter=quota_limiter)
