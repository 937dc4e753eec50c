"""Help session store.

Reads sessions for the chat core and owns the status state machine.
The chat core only ever calls ``get``; ``transition`` belongs to the
offer/request workflow that activates, completes, and cancels sessions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpchat.core.exceptions import (
    InvalidSessionTransitionError,
    SessionNotFoundError,
)
from helpchat.models.chat_message import ChatMessage
from helpchat.models.help_session import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    HelpSession,
    SessionStatus,
)
from helpchat.services.chat.guard import resolve_counterpart

logger = structlog.get_logger(__name__)


@dataclass
class SessionSummary:
    """A session as seen by one of its participants."""

    session: HelpSession
    counterpart_id: UUID
    unread_count: int
    last_message: ChatMessage | None


class HelpSessionStore:
    """Loads help sessions and applies status transitions."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, session_id: UUID) -> HelpSession:
        session = await self._db.get(HelpSession, session_id, populate_existing=True)
        if session is None:
            raise SessionNotFoundError()
        return session

    async def transition(
        self,
        session_id: UUID,
        status: SessionStatus,
        finalized_by: str = "system",
        result: str | None = None,
    ) -> HelpSession:
        """Move a session forward in its lifecycle.

        pending → active | cancelled, active → completed | cancelled.
        Terminal transitions stamp ended_at and finalized_by.
        """
        session = await self.get(session_id)
        current = SessionStatus(session.status)
        if status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidSessionTransitionError(
                f"Cannot move a {current.value} session to {status.value}"
            )

        session.status = status.value
        if status in TERMINAL_STATUSES:
            session.ended_at = datetime.now(timezone.utc)
            session.finalized_by = finalized_by
            if result is not None:
                session.result = result
        await self._db.flush()

        logger.info(
            "help_session_transitioned",
            session_id=str(session_id),
            from_status=current.value,
            to_status=status.value,
            finalized_by=finalized_by,
        )
        return session

    async def list_for_user(self, user_id: UUID) -> list[SessionSummary]:
        """All sessions the user takes part in, newest first."""
        result = await self._db.execute(
            select(HelpSession)
            .where(
                or_(
                    HelpSession.requester_id == user_id,
                    HelpSession.helper_id == user_id,
                )
            )
            .order_by(HelpSession.started_at.desc())
            .execution_options(populate_existing=True)
        )
        sessions = result.scalars().all()
        if not sessions:
            return []

        session_ids = [s.id for s in sessions]
        unread_result = await self._db.execute(
            select(ChatMessage.session_id, func.count(ChatMessage.id))
            .where(
                ChatMessage.session_id.in_(session_ids),
                ChatMessage.receiver_id == user_id,
                ChatMessage.is_read.is_(False),
            )
            .group_by(ChatMessage.session_id)
        )
        unread_counts = dict(unread_result.tuples().all())

        summaries: list[SessionSummary] = []
        for session in sessions:
            last_result = await self._db.execute(
                select(ChatMessage)
                .where(ChatMessage.session_id == session.id)
                .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
                .limit(1)
            )
            summaries.append(
                SessionSummary(
                    session=session,
                    counterpart_id=resolve_counterpart(session, user_id),
                    unread_count=unread_counts.get(session.id, 0),
                    last_message=last_result.scalar_one_or_none(),
                )
            )
        return summaries
