"""Chat message ORM model."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from helpchat.core.exceptions import ChatValidationError
from helpchat.db.postgres import Base
from helpchat.services.storage import StoredAttachment

_JSONList = JSON().with_variant(JSONB(), "postgresql")


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (
        CheckConstraint("sender_id <> receiver_id", name="ck_chat_messages_two_parties"),
        Index("ix_chat_messages_thread_order", "session_id", "created_at", "id"),
        Index(
            "ix_chat_messages_unread_by_receiver",
            "session_id",
            "receiver_id",
            "is_read",
        ),
    )

    # Store-assigned and increasing: breaks created_at ties in insertion order.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("help_sessions.id"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    receiver_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_urls: Mapped[list[str]] = mapped_column(
        _JSONList, nullable=False, default=list
    )
    attachment_handles: Mapped[list[str]] = mapped_column(
        _JSONList, nullable=False, default=list
    )
    notif_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("notifications.id"), nullable=True, index=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __init__(self, **kwargs: Any) -> None:
        content = kwargs.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ChatValidationError("Message content cannot be empty")
        if kwargs.get("sender_id") == kwargs.get("receiver_id"):
            raise ChatValidationError("Sender and receiver must be different users")
        attachments = kwargs.pop("attachments", None)
        super().__init__(**kwargs)
        if attachments is not None:
            self.attachments = attachments

    @property
    def attachments(self) -> list[StoredAttachment]:
        """Attachments in display order."""
        return [
            StoredAttachment(url=url, handle=handle)
            for url, handle in zip(
                self.attachment_urls or [], self.attachment_handles or []
            )
        ]

    @attachments.setter
    def attachments(self, value: list[StoredAttachment]) -> None:
        # Assign fresh lists so the JSON columns are flagged dirty.
        self.attachment_urls = [a.url for a in value]
        self.attachment_handles = [a.handle for a in value]
