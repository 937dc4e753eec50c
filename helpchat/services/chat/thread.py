"""Message thread service for help sessions.

Sending is a three-step saga rather than one transaction:
1. Commit the message row
2. Record the receiver's notification (idempotent, keyed on message id)
3. Link the notification back onto the message and commit

If step 2 or 3 fails the message stays committed with notif_id=None and
NotificationBackfill repairs it on its next run. Read-marking is a single
conditional bulk update, so repeating it is a no-op.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from helpchat.core.clock import Clock, as_utc, utcnow
from helpchat.core.config import settings
from helpchat.core.exceptions import (
    AlreadyReadError,
    AttachmentStorageError,
    ChatValidationError,
    EditWindowExpiredError,
    MessageNotFoundError,
    SessionNotActiveError,
)
from helpchat.models.chat_message import ChatMessage
from helpchat.services.chat.guard import (
    require_participant,
    require_receiver,
    require_sender,
    resolve_counterpart,
)
from helpchat.services.notifications import NotificationLedger
from helpchat.services.sessions import HelpSessionStore
from helpchat.services.storage import (
    AttachmentStorage,
    AttachmentUpload,
    StoredAttachment,
)

logger = structlog.get_logger(__name__)


def within_edit_window(created_at: datetime, now: datetime, window: timedelta) -> bool:
    """True while ``now`` is at most ``window`` after ``created_at``."""
    return now - as_utc(created_at) <= window


class MessageThreadService:
    """Send, list, edit, and read-mark the messages of a help session."""

    def __init__(
        self,
        db: AsyncSession,
        sessions: HelpSessionStore,
        ledger: NotificationLedger,
        storage: AttachmentStorage,
        edit_window: timedelta | None = None,
        content_max_length: int | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._db = db
        self._sessions = sessions
        self._ledger = ledger
        self._storage = storage
        self._edit_window = edit_window or settings.chat_edit_window
        self._content_max_length = content_max_length or settings.chat_content_max_length
        self._clock = clock

    # ------------------------------------------------------------------
    # Send / list
    # ------------------------------------------------------------------

    async def send_message(
        self,
        session_id: UUID,
        caller_id: UUID,
        content: str,
        attachments: Sequence[AttachmentUpload] = (),
    ) -> ChatMessage:
        """Post a message to the caller's counterpart in an active session.

        Attachments are uploaded only after every check has passed.
        """
        session = await self._sessions.get(session_id)
        if not session.is_active:
            raise SessionNotActiveError("Cannot send message to inactive session")
        receiver_id = resolve_counterpart(session, caller_id)
        content = self._validate_content(content)

        stored = await self._upload_all(attachments)
        now = self._clock()
        try:
            message = ChatMessage(
                session_id=session.id,
                sender_id=caller_id,
                receiver_id=receiver_id,
                content=content,
                attachments=stored,
                is_read=False,
                edited=False,
                created_at=now,
                updated_at=now,
            )
            self._db.add(message)
            await self._db.flush()
            await self._db.commit()
        except SQLAlchemyError:
            await self._db.rollback()
            await self._discard(stored)
            raise

        logger.info(
            "chat_message_sent",
            session_id=str(session_id),
            message_id=message.id,
            sender_id=str(caller_id),
            attachments=len(stored),
        )

        await self._notify_receiver(message)
        return message

    async def list_messages(self, session_id: UUID, caller_id: UUID) -> list[ChatMessage]:
        """Return the thread oldest first; readable after the session ends."""
        session = await self._sessions.get(session_id)
        require_participant(session, caller_id)

        result = await self._db.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Read-marking
    # ------------------------------------------------------------------

    async def mark_message_read(self, message_id: int, caller_id: UUID) -> ChatMessage:
        """Mark the caller's whole unread backlog in the thread as read.

        Also expires the caller's unread notifications for the session so
        badge counts drop together with the messages.
        """
        message = await self._get_message(message_id)
        require_receiver(message, caller_id)

        marked = await self._mark_thread_read(message.session_id, caller_id)
        expired = await self._ledger.expire_for_resource(
            user_id=caller_id, resource_id=message.session_id
        )
        await self._db.flush()
        await self._db.refresh(message)

        logger.info(
            "chat_thread_read",
            session_id=str(message.session_id),
            reader_id=str(caller_id),
            messages_marked=marked,
            notifications_expired=expired,
        )
        return message

    async def mark_all_messages_read(self, session_id: UUID, caller_id: UUID) -> int:
        """Mark every unread message addressed to the caller in the session."""
        session = await self._sessions.get(session_id)
        require_participant(session, caller_id)

        marked = await self._mark_thread_read(session_id, caller_id)
        await self._db.flush()

        logger.info(
            "chat_thread_read_all",
            session_id=str(session_id),
            reader_id=str(caller_id),
            messages_marked=marked,
        )
        return marked

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    async def edit_message(
        self,
        message_id: int,
        caller_id: UUID,
        content: str | None = None,
        attachments: Sequence[AttachmentUpload] | None = None,
    ) -> ChatMessage:
        """Edit an unread message the caller sent, inside the edit window.

        New attachments replace the old list only after every old upload
        has been revoked; a failed revocation aborts the edit unchanged
        and discards the new uploads.
        """
        message = await self._get_message(message_id)
        require_sender(message, caller_id)

        now = self._clock()
        if not within_edit_window(message.created_at, now, self._edit_window):
            minutes = int(self._edit_window.total_seconds() // 60)
            raise EditWindowExpiredError(
                f"You can only edit a message within {minutes} minutes after sending it"
            )
        if message.is_read:
            raise AlreadyReadError()

        session = await self._sessions.get(message.session_id)
        if not session.is_active:
            raise SessionNotActiveError("Cannot edit a message in an inactive session")

        if content is None and not attachments:
            raise ChatValidationError("Provide new content or attachments to edit")
        if content is not None:
            content = self._validate_content(content)

        replacement: list[StoredAttachment] = []
        if attachments:
            replacement = await self._upload_all(attachments)
            try:
                for old in message.attachments:
                    await self._storage.revoke(old.handle)
            except AttachmentStorageError:
                await self._discard(replacement)
                logger.warning("chat_edit_aborted_revoke_failed", message_id=message_id)
                raise

        try:
            if attachments:
                message.attachments = replacement
            if content is not None:
                message.content = content
            message.edited = True
            message.updated_at = now
            await self._db.flush()
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            await self._discard(replacement)
            logger.error("chat_edit_write_failed", message_id=message_id, error=str(e))
            raise

        logger.info(
            "chat_message_edited",
            message_id=message.id,
            session_id=str(message.session_id),
            attachments_replaced=bool(attachments),
        )

        await self._sync_notification_preview(message)
        return message

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_content(self, content: str) -> str:
        if content is None or not content.strip():
            raise ChatValidationError("Message content cannot be empty")
        if len(content) > self._content_max_length:
            raise ChatValidationError(
                f"Message content cannot exceed {self._content_max_length} characters"
            )
        return content

    async def _upload_all(
        self, uploads: Sequence[AttachmentUpload]
    ) -> list[StoredAttachment]:
        """Store uploads in order; on failure revoke what was already stored."""
        stored: list[StoredAttachment] = []
        try:
            for upload in uploads:
                stored.append(
                    await self._storage.upload(
                        upload.filename, upload.content, upload.content_type
                    )
                )
        except AttachmentStorageError:
            await self._discard(stored)
            raise
        return stored

    async def _discard(self, stored: Sequence[StoredAttachment]) -> None:
        for attachment in stored:
            try:
                await self._storage.revoke(attachment.handle)
            except AttachmentStorageError as e:
                logger.warning(
                    "attachment_discard_failed",
                    handle=attachment.handle,
                    error=str(e),
                )

    async def _get_message(self, message_id: int) -> ChatMessage:
        message = await self._db.get(ChatMessage, message_id, populate_existing=True)
        if message is None:
            raise MessageNotFoundError(f"Message with id:{message_id} not found")
        return message

    async def _mark_thread_read(self, session_id: UUID, reader_id: UUID) -> int:
        result = await self._db.execute(
            update(ChatMessage)
            .where(
                ChatMessage.session_id == session_id,
                ChatMessage.receiver_id == reader_id,
                ChatMessage.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def _notify_receiver(self, message: ChatMessage) -> None:
        """Steps 2 and 3 of the send saga; failures are left to the backfill."""
        message_id, session_id = message.id, message.session_id
        committed = self._committed_values(message)
        committed["notif_id"] = None
        try:
            notification = await self._ledger.record_chat_message(message)
            message.notif_id = notification.id
            await self._db.flush()
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.warning(
                "chat_notification_deferred",
                message_id=message_id,
                session_id=str(session_id),
                error=str(e),
            )
            await self._reload(message, committed)

    async def _sync_notification_preview(self, message: ChatMessage) -> None:
        # The notification is only a preview; the message is the record.
        notification_id = message.notif_id
        if notification_id is None:
            return
        message_id = message.id
        committed = self._committed_values(message)
        try:
            await self._ledger.update_preview(notification_id, message.content)
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.warning(
                "chat_notification_preview_failed",
                message_id=message_id,
                notification_id=str(notification_id),
                error=str(e),
            )
            await self._reload(message, committed)

    @staticmethod
    def _committed_values(message: ChatMessage) -> dict[str, Any]:
        state = inspect(message)
        return {
            attr.key: state.dict[attr.key]
            for attr in state.mapper.column_attrs
            if attr.key in state.dict
        }

    async def _reload(self, message: ChatMessage, committed: dict[str, Any]) -> None:
        """Reload ``message`` after a rollback.

        The message itself is already committed, so if the store cannot be
        read either the last committed values are put back instead of
        failing a request whose write succeeded.
        """
        try:
            await self._db.refresh(message)
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.warning(
                "chat_message_reload_failed",
                message_id=committed.get("id"),
                error=str(e),
            )
            for key, value in committed.items():
                set_committed_value(message, key, value)
