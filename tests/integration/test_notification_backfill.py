"""Integration tests for the send saga and the notification backfill.

Tests:
  - notification step fails → message committed, notif_id None, no error raised
  - backfill repairs it after the grace period, not before
  - a notification written before a lost link is reused, not duplicated
  - a second backfill run finds nothing to do
  - a message read before the repair gets a read, expired notification
  - a store outage after the message commit still returns the sent message
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from helpchat.models.chat_message import ChatMessage
from helpchat.models.help_session import HelpSession
from helpchat.models.notification import Notification
from helpchat.services.chat.backfill import NotificationBackfill
from helpchat.services.chat.thread import MessageThreadService
from helpchat.services.notifications import NotificationLedger, chat_dedupe_key
from tests.conftest import FrozenClock

GRACE = timedelta(seconds=60)


async def _notification_count(db: AsyncSession) -> int:
    return await db.scalar(select(func.count()).select_from(Notification))


async def _send_without_notification(
    thread: MessageThreadService, session_id: uuid.UUID, sender_id: uuid.UUID
) -> ChatMessage:
    ledger = thread._ledger
    original = ledger.record_chat_message
    ledger.record_chat_message = AsyncMock(
        side_effect=OperationalError("INSERT INTO notifications", {}, Exception("db down"))
    )
    try:
        return await thread.send_message(session_id, sender_id, "hello")
    finally:
        ledger.record_chat_message = original


class TestDeferredNotification:
    """Tests for the send saga when the notification step fails."""

    @pytest.mark.asyncio
    async def test_message_survives_notification_failure(
        self,
        thread: MessageThreadService,
        test_db: AsyncSession,
        active_session: HelpSession,
        requester_id: uuid.UUID,
    ) -> None:
        message = await _send_without_notification(
            thread, active_session.id, requester_id
        )

        reloaded = await test_db.get(ChatMessage, message.id, populate_existing=True)
        assert reloaded is not None
        assert reloaded.content == "hello"
        assert reloaded.notif_id is None
        assert await _notification_count(test_db) == 0


class TestNotificationBackfill:
    """Tests for NotificationBackfill.run."""

    @pytest.mark.asyncio
    async def test_repairs_after_grace(
        self,
        thread: MessageThreadService,
        clock: FrozenClock,
        test_db: AsyncSession,
        active_session: HelpSession,
        requester_id: uuid.UUID,
        helper_id: uuid.UUID,
    ) -> None:
        message = await _send_without_notification(
            thread, active_session.id, requester_id
        )
        backfill = NotificationBackfill(
            db=test_db, ledger=NotificationLedger(test_db), grace=GRACE, clock=clock
        )

        clock.advance(seconds=30)
        assert await backfill.run() == 0

        clock.advance(seconds=31)
        assert await backfill.run() == 1

        reloaded = await test_db.get(ChatMessage, message.id, populate_existing=True)
        assert reloaded.notif_id is not None
        notification = await test_db.get(Notification, reloaded.notif_id)
        assert notification.user_id == helper_id
        assert notification.dedupe_key == chat_dedupe_key(message.id)

        assert await backfill.run() == 0
        assert await _notification_count(test_db) == 1

    @pytest.mark.asyncio
    async def test_reuses_unlinked_notification(
        self,
        thread: MessageThreadService,
        clock: FrozenClock,
        test_db: AsyncSession,
        active_session: HelpSession,
        requester_id: uuid.UUID,
    ) -> None:
        message = await _send_without_notification(
            thread, active_session.id, requester_id
        )
        # Notification written but the link never committed.
        ledger = NotificationLedger(test_db)
        orphan = await ledger.record_chat_message(message)
        await test_db.commit()

        clock.advance(minutes=2)
        repaired = await NotificationBackfill(
            db=test_db, ledger=ledger, grace=GRACE, clock=clock
        ).run()

        assert repaired == 1
        reloaded = await test_db.get(ChatMessage, message.id, populate_existing=True)
        assert reloaded.notif_id == orphan.id
        assert await _notification_count(test_db) == 1

    @pytest.mark.asyncio
    async def test_linked_messages_ignored(
        self,
        thread: MessageThreadService,
        clock: FrozenClock,
        test_db: AsyncSession,
        active_session: HelpSession,
        requester_id: uuid.UUID,
    ) -> None:
        await thread.send_message(active_session.id, requester_id, "hello")
        clock.advance(minutes=10)
        repaired = await NotificationBackfill(
            db=test_db, ledger=NotificationLedger(test_db), grace=GRACE, clock=clock
        ).run()
        assert repaired == 0
        assert await _notification_count(test_db) == 1

    @pytest.mark.asyncio
    async def test_message_read_before_repair(
        self,
        thread: MessageThreadService,
        clock: FrozenClock,
        test_db: AsyncSession,
        active_session: HelpSession,
        requester_id: uuid.UUID,
        helper_id: uuid.UUID,
    ) -> None:
        message = await _send_without_notification(
            thread, active_session.id, requester_id
        )
        await thread.mark_message_read(message.id, helper_id)
        await test_db.commit()

        clock.advance(seconds=61)
        repaired = await NotificationBackfill(
            db=test_db,
            ledger=NotificationLedger(test_db, clock=clock),
            grace=GRACE,
            clock=clock,
        ).run()

        assert repaired == 1
        reloaded = await test_db.get(ChatMessage, message.id, populate_existing=True)
        notification = await test_db.get(Notification, reloaded.notif_id)
        assert notification.is_read is True
        assert notification.status == "expired"

        unread = await test_db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == helper_id, Notification.is_read.is_(False))
        )
        assert unread == 0


class TestStoreOutageAfterSend:
    """The message write succeeded; later store failures must not fail the send."""

    @pytest.mark.asyncio
    async def test_reload_failure_returns_committed_message(
        self,
        thread: MessageThreadService,
        clock: FrozenClock,
        test_db: AsyncSession,
        active_session: HelpSession,
        requester_id: uuid.UUID,
        helper_id: uuid.UUID,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(
            thread._ledger,
            "record_chat_message",
            AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down"))),
        )
        monkeypatch.setattr(
            test_db,
            "refresh",
            AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down"))),
        )

        message = await thread.send_message(active_session.id, requester_id, "hello")

        assert message.id is not None
        assert message.content == "hello"
        assert message.receiver_id == helper_id
        assert message.notif_id is None
        assert message.is_read is False
        assert message.created_at == clock.now

        monkeypatch.undo()
        stored = await test_db.scalar(select(func.count()).select_from(ChatMessage))
        assert stored == 1
