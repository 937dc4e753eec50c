"""Shared pytest fixtures for the help-chat test suite.

Provides:
  - FrozenClock: injectable clock that only moves when told to
  - FakeAttachmentStorage: in-memory AttachmentStorage with call tracking
  - test_db: Async SQLite in-memory session for integration tests
  - requester_id / helper_id / outsider_id: fixed user ids
  - active_session: persisted HelpSession between requester and helper
  - thread: MessageThreadService wired to test_db, the clock and storage

No external service is contacted; attachment storage is always the fake.
"""

from __future__ import annotations

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import helpchat.models  # noqa: F401
from helpchat.core.exceptions import AttachmentStorageError
from helpchat.db.postgres import Base
from helpchat.models.help_session import HelpSession
from helpchat.services.chat.thread import MessageThreadService
from helpchat.services.notifications import NotificationLedger
from helpchat.services.sessions import HelpSessionStore
from helpchat.services.storage import StoredAttachment

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FrozenClock:
    """Clock returning a fixed instant until advanced."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ---------------------------------------------------------------------------
# Attachment storage
# ---------------------------------------------------------------------------


class FakeAttachmentStorage:
    """In-memory AttachmentStorage for testing."""

    def __init__(self) -> None:
        self.uploads: list[dict[str, Any]] = []
        self.revoked: list[str] = []
        self.fail_upload = False
        self.fail_revoke_for: set[str] = set()
        self._counter = 0

    async def upload(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> StoredAttachment:
        if self.fail_upload:
            raise AttachmentStorageError("Attachment upload failed")
        self._counter += 1
        handle = f"h{self._counter}"
        self.uploads.append(
            {
                "filename": filename,
                "content": content,
                "content_type": content_type,
                "handle": handle,
            }
        )
        return StoredAttachment(
            url=f"https://files.test/{handle}/{filename}", handle=handle
        )

    async def revoke(self, handle: str) -> None:
        if handle in self.fail_revoke_for:
            raise AttachmentStorageError("Attachment revocation failed")
        self.revoked.append(handle)

    @property
    def live_handles(self) -> list[str]:
        return [u["handle"] for u in self.uploads if u["handle"] not in self.revoked]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FrozenClock:
    """Frozen clock fixture."""
    return FrozenClock()


@pytest.fixture
def storage() -> FakeAttachmentStorage:
    """Fake attachment storage fixture."""
    return FakeAttachmentStorage()


@pytest.fixture
def requester_id() -> uuid.UUID:
    """Fixed requester UUID for testing."""
    return uuid.UUID("00000000-0000-0000-0000-00000000000a")


@pytest.fixture
def helper_id() -> uuid.UUID:
    """Fixed helper UUID for testing."""
    return uuid.UUID("00000000-0000-0000-0000-00000000000b")


@pytest.fixture
def outsider_id() -> uuid.UUID:
    """A user who takes part in no session."""
    return uuid.UUID("00000000-0000-0000-0000-00000000000c")


@pytest_asyncio.fixture
async def test_db() -> AsyncIterator[AsyncSession]:
    """Async SQLite in-memory session with the full schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def active_session(
    test_db: AsyncSession, requester_id: uuid.UUID, helper_id: uuid.UUID
) -> HelpSession:
    """Persisted active session between requester and helper."""
    session = HelpSession(
        requester_id=requester_id,
        helper_id=helper_id,
        offer_id=uuid.UUID("00000000-0000-0000-0000-0000000000f1"),
    )
    test_db.add(session)
    await test_db.commit()
    return session


@pytest.fixture
def thread(
    test_db: AsyncSession, clock: FrozenClock, storage: FakeAttachmentStorage
) -> MessageThreadService:
    """MessageThreadService wired to the in-memory database."""
    return MessageThreadService(
        db=test_db,
        sessions=HelpSessionStore(db=test_db),
        ledger=NotificationLedger(db=test_db, clock=clock),
        storage=storage,
        edit_window=timedelta(minutes=5),
        content_max_length=1000,
        clock=clock,
    )
