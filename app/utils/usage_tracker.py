# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user_usage_stat import UserUsageStat
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _find_stat(db: Session, user_id: str, usage_type: str):
    return db.query(UserUsageStat).filter_by(user_id=user_id, usage_type=usage_type).first()


def _increment(db: Session, user_id: str, usage_type: str, model, is_premium: bool) -> UserUsageStat:
    now = utcnow()
    stat = _find_stat(db, user_id, usage_type)

    if stat is None:
        stat = UserUsageStat(user_id=user_id, usage_type=usage_type, count=0, premium_count=0, first_used=now)
        db.add(stat)

    stat.count = (stat.count or 0) + 1
    if is_premium:
        stat.premium_count = (stat.premium_count or 0) + 1
    stat.last_model = model
    stat.last_used = now

    db.commit()
    return stat


def track_usage_event(db: Session, user_id: str, usage_type: str, model: str = None, is_premium: bool = False) -> UserUsageStat:
    """
    Records one successful generation of `usage_type` (insight, chat, summary).
    """
    try:
        stat = _increment(db, user_id, usage_type, model, is_premium)
    except IntegrityError:
        # A concurrent request inserted the row first; count against it instead
        db.rollback()
        logger.info(f"📊 {usage_type} usage row for {user_id} created concurrently, retrying as update")
        stat = _increment(db, user_id, usage_type, model, is_premium)

    logger.debug(f"📊 {usage_type} usage for {user_id}: {stat.count}")
    return stat


def get_usage_counts(db: Session, user_id: str) -> dict:
    stats = db.query(UserUsageStat).filter_by(user_id=user_id).all()
    return {s.usage_type: s.count for s in stats}
