# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth import get_db, get_generator
from app.utils.rate_limit_utils import quota_limiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Infra"])


def _database_reachable(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"❌ Health check DB failure: {e}")
        return False


@router.get("/health")
def health(db: Session = Depends(get_db)):
    if not _database_reachable(db):
        return JSONResponse(status_code=503, content={"status": "error", "database": "unreachable"})
    return {"status": "ok", "database": "connected"}


@router.get("/healthz")
def health_check(db: Session = Depends(get_db), generator=Depends(get_generator)):
    result = {
        "db_connection": _database_reachable(db),
        "ai_provider": generator.__class__.__name__,
        "tracked_quota_users": quota_limiter.tracked_users(),
    }
    status = "ok" if result["db_connection"] else "error"
    return {"status": status, "details": result}
