# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
import time

from app.utils.schedulers.quota_cleaner import clean_expired_quota_counters


logger = logging.getLogger("cleanup")

CLEANUP_TASKS = [
    ("QuotaCounters", clean_expired_quota_counters),
]


def run_all_cleanups(tasks=None):
    logger.info("🧹 Starting all cleanup tasks...")

    for name, func in tasks or CLEANUP_TASKS:
        start = time.time()
        try:
            logger.info(f"🔹 Running cleanup: {name}")
            func()
            duration = round(time.time() - start, 2)
            logger.info(f"✅ Completed {name} cleanup in {duration} sec.")
        except Exception as e:
            # One failing job must not stop the rest of the batch
            logger.error(f"🛑 {name} cleanup failed: {e}", exc_info=True)

    logger.info("🎉 All cleanup jobs completed.")
