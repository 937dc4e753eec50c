"""Notification response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    """Serialized notification ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    resource_model: str | None = None
    resource_id: uuid.UUID | None = None
    title: str
    message: str
    type: str
    status: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    """GET /notifications response body."""

    total: int
    notifications: list[NotificationRead]


class NotificationsReadAllResponse(BaseModel):
    """PATCH /notifications/readAll response body."""

    updated: int
