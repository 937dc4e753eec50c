"""Notification backfill for chat messages.

Finds messages whose send saga stopped before the notification was linked
(notif_id IS NULL) and are older than the grace period, then records and
links the missing notification. NotificationLedger.record_chat_message is
idempotent, so a notification written before a failed link is reused
rather than duplicated. Runs on a schedule from the app lifespan.
"""

from __future__ import annotations

from datetime import timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from helpchat.models.chat_message import ChatMessage
from helpchat.core.clock import Clock, utcnow
from helpchat.services.notifications import NotificationLedger

logger = structlog.get_logger(__name__)


class NotificationBackfill:
    """Repairs chat messages left without a notification."""

    def __init__(
        self,
        db: AsyncSession,
        ledger: NotificationLedger,
        grace: timedelta,
        clock: Clock = utcnow,
        batch_size: int = 500,
    ) -> None:
        self._db = db
        self._ledger = ledger
        self._grace = grace
        self._clock = clock
        self._batch_size = batch_size

    async def run(self) -> int:
        """Link a notification to every stale unlinked message.

        Each message is committed on its own; one failure is logged and
        the rest of the batch continues. Returns the number repaired.
        """
        cutoff = self._clock() - self._grace
        result = await self._db.execute(
            select(ChatMessage.id)
            .where(
                ChatMessage.notif_id.is_(None),
                ChatMessage.created_at <= cutoff,
            )
            .order_by(ChatMessage.id.asc())
            .limit(self._batch_size)
        )
        message_ids = list(result.scalars().all())

        repaired = 0
        for message_id in message_ids:
            try:
                message = await self._db.get(
                    ChatMessage, message_id, populate_existing=True
                )
                if message is None or message.notif_id is not None:
                    continue
                notification = await self._ledger.record_chat_message(message)
                message.notif_id = notification.id
                await self._db.commit()
                repaired += 1
            except SQLAlchemyError as e:
                await self._db.rollback()
                logger.error(
                    "notification_backfill_failed",
                    message_id=message_id,
                    error=str(e),
                )

        if repaired > 0:
            logger.info(
                "notification_backfill_repaired",
                count=repaired,
                scanned=len(message_ids),
            )
        return repaired
