"""Help session ORM model."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from helpchat.core.exceptions import ChatValidationError
from helpchat.db.postgres import Base


class SessionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})

# Monotonic: nothing leaves a terminal state.
ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.ACTIVE, SessionStatus.CANCELLED}),
    SessionStatus.ACTIVE: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.CANCELLED}
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


class HelpSession(Base):
    __tablename__ = "help_sessions"
    __table_args__ = (
        CheckConstraint("requester_id <> helper_id", name="ck_help_sessions_two_parties"),
        CheckConstraint(
            "offer_id IS NULL OR request_id IS NULL",
            name="ck_help_sessions_single_origin",
        ),
        CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 5)",
            name="ck_help_sessions_rating_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    offer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    request_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), nullable=True
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    helper_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=SessionStatus.ACTIVE.value, index=True
    )  # 'pending' | 'active' | 'completed' | 'cancelled'
    result: Mapped[str] = mapped_column(
        String(16), nullable=False, default="undefined"
    )  # 'successful' | 'unsuccessful' | 'partial' | 'undefined'
    finalized_by: Mapped[str] = mapped_column(
        String(16), nullable=False, default="none"
    )  # 'requester' | 'helper' | 'system' | 'none'
    rating_pending: Mapped[bool] = mapped_column(Boolean, default=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __init__(self, **kwargs: Any) -> None:
        requester_id = kwargs.get("requester_id")
        helper_id = kwargs.get("helper_id")
        if requester_id is None or helper_id is None:
            raise ChatValidationError("A help session needs a requester and a helper")
        if requester_id == helper_id:
            raise ChatValidationError("A help session needs two distinct participants")
        if kwargs.get("offer_id") is not None and kwargs.get("request_id") is not None:
            raise ChatValidationError(
                "A help session originates from an offer or a request, not both"
            )
        kwargs.setdefault("status", SessionStatus.ACTIVE.value)
        super().__init__(**kwargs)

    @property
    def participant_ids(self) -> tuple[uuid.UUID, uuid.UUID]:
        return (self.requester_id, self.helper_id)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE.value

    @property
    def is_terminal(self) -> bool:
        return SessionStatus(self.status) in TERMINAL_STATUSES
