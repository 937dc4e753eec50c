"""Notification ledger ORM model."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from helpchat.db.postgres import Base


class NotificationType(str, Enum):
    REQUEST = "request"
    OFFER = "offer"
    SOS = "sos"
    SESSION = "session"
    CHAT = "chat"
    SYSTEM = "system"


class NotificationStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "ix_notifications_addressee_resource",
            "user_id",
            "resource_model",
            "resource_id",
            "is_read",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    resource_model: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )  # 'Offer' | 'Request' | 'HelpSession'
    resource_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, default="")
    message: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=NotificationType.SYSTEM.value
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=NotificationStatus.ACTIVE.value
    )
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # One entry per source event, e.g. "chat_message:42".
    dedupe_key: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
