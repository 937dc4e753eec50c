"""Notification ledger.

Append-only, addressee-specific records of user-facing events. The chat
core writes ``chat`` entries as a side effect of sending and expires them
when the addressee reads the thread. Delivery (push, email) happens
elsewhere; this module only keeps the records.

Chat entries carry ``dedupe_key = "chat_message:<id>"`` so creating the
notification for a message is safe to repeat.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpchat.core.clock import Clock, utcnow
from helpchat.core.exceptions import NotAddresseeError, NotificationNotFoundError
from helpchat.models.chat_message import ChatMessage
from helpchat.models.notification import (
    Notification,
    NotificationStatus,
    NotificationType,
)

logger = structlog.get_logger(__name__)

HELP_SESSION_RESOURCE = "HelpSession"
CHAT_NOTIFICATION_TITLE = "New Message Received"


def chat_dedupe_key(message_id: int) -> str:
    return f"chat_message:{message_id}"


class NotificationLedger:
    """Creates and transitions notification records."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    async def record_chat_message(self, message: ChatMessage) -> Notification:
        """Return the notification for ``message``, creating it if missing.

        A message the receiver has already read gets its entry created
        read and expired, matching what read-marking would have done.
        """
        key = chat_dedupe_key(message.id)
        existing = await self._db.scalar(
            select(Notification).where(Notification.dedupe_key == key)
        )
        if existing is not None:
            return existing

        status = NotificationStatus.EXPIRED if message.is_read else NotificationStatus.ACTIVE
        notification = Notification(
            user_id=message.receiver_id,
            resource_model=HELP_SESSION_RESOURCE,
            resource_id=message.session_id,
            title=CHAT_NOTIFICATION_TITLE,
            message=message.content,
            type=NotificationType.CHAT.value,
            status=status.value,
            is_read=message.is_read,
            dedupe_key=key,
            created_at=self._clock(),
        )
        self._db.add(notification)
        await self._db.flush()

        logger.debug(
            "notification_recorded",
            notification_id=str(notification.id),
            user_id=str(message.receiver_id),
            message_id=message.id,
        )
        return notification

    async def expire_for_resource(
        self,
        user_id: UUID,
        resource_id: UUID,
        resource_model: str = HELP_SESSION_RESOURCE,
    ) -> int:
        """Mark every unread entry for the addressee and resource read+expired."""
        result = await self._db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.resource_model == resource_model,
                Notification.resource_id == resource_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, status=NotificationStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def update_preview(self, notification_id: UUID, message: str) -> None:
        await self._db.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(message=message)
            .execution_options(synchronize_session=False)
        )

    async def list_for_user(self, user_id: UUID) -> list[Notification]:
        result = await self._db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await self._db.get(
            Notification, notification_id, populate_existing=True
        )
        if notification is None:
            raise NotificationNotFoundError()
        if notification.user_id != user_id:
            raise NotAddresseeError()
        if not notification.is_read:
            notification.is_read = True
            await self._db.flush()
        return notification

    async def mark_all_read(self, user_id: UUID) -> int:
        result = await self._db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
