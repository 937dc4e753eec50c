"""Shared FastAPI dependencies: auth, database sessions, service injection.

The attachment storage client is created once during the FastAPI lifespan
and stored on app.state. All downstream code retrieves it via Depends(),
never by direct import.
"""

from uuid import UUID

from fastapi import Cookie, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from helpchat.core.config import settings
from helpchat.core.exceptions import UnauthorizedError
from helpchat.core.security import decode_access_token
from helpchat.db.postgres import get_async_session
from helpchat.services.chat.thread import MessageThreadService
from helpchat.services.notifications import NotificationLedger
from helpchat.services.sessions import HelpSessionStore
from helpchat.services.storage import AttachmentStorage


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

async def get_db(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncSession:
    """Yield an async database session."""
    return session


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

async def get_current_user_id(
    access_token: str | None = Cookie(None, alias=settings.access_cookie_name),
) -> UUID:
    """Return the caller's user id from the access-token cookie."""
    if not access_token:
        raise UnauthorizedError()
    return decode_access_token(access_token)


# ---------------------------------------------------------------------------
# Singletons, retrieved from app.state (set during lifespan)
# ---------------------------------------------------------------------------

def get_attachment_storage(request: Request) -> AttachmentStorage:
    """Return the attachment storage client from app state."""
    return request.app.state.attachment_storage


# ---------------------------------------------------------------------------
# Service constructors wired via Depends()
# ---------------------------------------------------------------------------

async def get_session_store(
    db: AsyncSession = Depends(get_db),
) -> HelpSessionStore:
    """Return a HelpSessionStore instance."""
    return HelpSessionStore(db=db)


async def get_notification_ledger(
    db: AsyncSession = Depends(get_db),
) -> NotificationLedger:
    """Return a NotificationLedger instance."""
    return NotificationLedger(db=db)


async def get_message_thread_service(
    db: AsyncSession = Depends(get_db),
    sessions: HelpSessionStore = Depends(get_session_store),
    ledger: NotificationLedger = Depends(get_notification_ledger),
    storage: AttachmentStorage = Depends(get_attachment_storage),
) -> MessageThreadService:
    """Return a MessageThreadService wired with store, ledger and storage."""
    return MessageThreadService(
        db=db,
        sessions=sessions,
        ledger=ledger,
        storage=storage,
        edit_window=settings.chat_edit_window,
        content_max_length=settings.chat_content_max_length,
    )
