"""Chat request/response schemas.

Send and edit take multipart form data (content plus files), so their
inputs are declared on the route; only responses live here.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AttachmentRead(BaseModel):
    """A stored attachment as exposed to clients (no revocation handle)."""

    model_config = ConfigDict(from_attributes=True)

    url: str


class ChatMessageRead(BaseModel):
    """Serialized chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    attachments: list[AttachmentRead] = []
    notif_id: uuid.UUID | None = None
    is_read: bool
    edited: bool
    created_at: datetime
    updated_at: datetime


class ChatThreadResponse(BaseModel):
    """GET /chat/{session_id} response body."""

    session_id: uuid.UUID
    total: int
    messages: list[ChatMessageRead]


class ChatReadAllResponse(BaseModel):
    """PATCH /chat/{session_id}/readAll response body."""

    session_id: uuid.UUID
    updated: int
