"""FastAPI application entrypoint.

The attachment storage client is created once during the lifespan and
stored on app.state for injection via Depends(). The notification
backfill runs every few minutes via APScheduler and repairs messages
whose send saga stopped before the notification was linked.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpchat.api.routes.chat import router as chat_router
from helpchat.api.routes.health import router as health_router
from helpchat.api.routes.notifications import router as notifications_router
from helpchat.api.routes.sessions import router as sessions_router
from helpchat.core.config import settings
from helpchat.core.exceptions import HelpChatError
from helpchat.db.postgres import async_session_factory, close_postgres
from helpchat.services.chat.backfill import NotificationBackfill
from helpchat.services.notifications import NotificationLedger
from helpchat.services.storage import HttpAttachmentStorage


def _configure_logging() -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


_configure_logging()

logger = structlog.get_logger(__name__)


async def _notification_backfill() -> None:
    """Link missing chat notifications. Called by APScheduler."""
    try:
        async with async_session_factory() as db:
            backfill = NotificationBackfill(
                db=db,
                ledger=NotificationLedger(db=db),
                grace=settings.notification_backfill_grace,
            )
            await backfill.run()
    except Exception as e:
        logger.error("notification_backfill_job_failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    # --- Startup ---
    logger.info("app_startup", env=settings.app_env)

    app.state.attachment_storage = HttpAttachmentStorage(
        base_url=settings.storage_base_url,
        api_key=settings.storage_api_key,
        timeout=settings.storage_timeout_seconds,
    )

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _notification_backfill,
        "interval",
        minutes=settings.notification_backfill_interval_minutes,
        id="notification_backfill",
    )
    scheduler.start()
    app.state.scheduler = scheduler

    logger.info("app_ready")
    yield

    # --- Shutdown ---
    logger.info("app_shutdown")

    scheduler.shutdown(wait=False)

    await app.state.attachment_storage.aclose()
    await close_postgres()


app = FastAPI(
    title="Help Sessions Chat API",
    description="Two-party chat for accepted help offers and requests.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HelpChatError)
async def helpchat_error_handler(request: Request, exc: HelpChatError) -> JSONResponse:
    """Structured error response for all help-chat exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


app.include_router(health_router)
app.include_router(chat_router)
app.include_router(sessions_router)
app.include_router(notifications_router)
