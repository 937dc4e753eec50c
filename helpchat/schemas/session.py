"""Help session response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from helpchat.schemas.chat import ChatMessageRead


class HelpSessionSummary(BaseModel):
    """One of the caller's sessions with its unread backlog."""

    model_config = ConfigDict(from_attributes=True)

    session_id: uuid.UUID
    status: str
    requester_id: uuid.UUID
    helper_id: uuid.UUID
    counterpart_id: uuid.UUID
    offer_id: uuid.UUID | None = None
    request_id: uuid.UUID | None = None
    result: str
    finalized_by: str
    rating_pending: bool
    started_at: datetime
    ended_at: datetime | None = None
    unread_count: int = 0
    last_message: ChatMessageRead | None = None


class HelpSessionListResponse(BaseModel):
    """GET /help-sessions response body."""

    total: int
    sessions: list[HelpSessionSummary]
