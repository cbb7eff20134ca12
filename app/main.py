# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pytz import timezone  # ✅ use this for interval
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import SCHEDULER_ENABLED, SCHEDULER_TIMEZONE
from app.models import database
from app.models import *  # noqa: F401,F403  registers all models

from app.routers import ai_router, healthz_router, journal_router, preferences_router
from app.schemas.responses import error_headers, error_status, serialize_error
from app.services.errors import JournalError
from app.utils.rate_limit_utils import limiter
from app.utils.schedulers.run_all_cleanups import run_all_cleanups

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


# Create DB tables in one go
database.Base.metadata.create_all(bind=database.engine)

# Scheduler setup
scheduler = BackgroundScheduler(job_defaults={"misfire_grace_time": 60})


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not SCHEDULER_ENABLED:
        logger.info("⏸️ Background scheduler disabled")
        yield
        return

    # 🧹 Drop expired quota counters every hour
    scheduler.add_job(
        run_all_cleanups,
        trigger="cron",
        minute=0,
        id="hourly_cleanups",
        replace_existing=True,
        timezone=timezone(SCHEDULER_TIMEZONE),
    )

    scheduler.start()
    yield
    scheduler.shutdown()


# Create FastAPI app with lifespan
app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Reflect AI Journal API",
    description="Journal entries, AI insights, threaded chat and summaries",
    version="1.0"
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Include routers
app.include_router(journal_router.router)
app.include_router(ai_router.router)
app.include_router(preferences_router.router)
app.include_router(healthz_router.router)


# ---------------------- ADDING EXCEPTION HANDLER ----------------------
@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request, exc):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please slow down."}
    )


@app.exception_handler(JournalError)
async def journal_error_handler(request: Request, exc: JournalError):
    return JSONResponse(status_code=error_status(exc), content=serialize_error(exc), headers=error_headers(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "ValidationFailed",
            "message": "Invalid request body",
            "code": "VALIDATION_ERROR",
            "details": _validation_details(exc),
        },
    )


def _validation_details(exc: RequestValidationError) -> list:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg")}
        for err in exc.errors()
    ]


@app.get("/")
def read_root():
    return {"message": "Welcome to Reflect - AI Journal Companion backend Live"}

