"""Notification ledger endpoints for the signed-in user."""

from uuid import UUID

from fastapi import APIRouter, Depends

from helpchat.api.deps import get_current_user_id, get_notification_ledger
from helpchat.schemas.notification import (
    NotificationListResponse,
    NotificationRead,
    NotificationsReadAllResponse,
)
from helpchat.services.notifications import NotificationLedger

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    user_id: UUID = Depends(get_current_user_id),
    ledger: NotificationLedger = Depends(get_notification_ledger),
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    notifications = await ledger.list_for_user(user_id)
    return NotificationListResponse(
        total=len(notifications),
        notifications=[NotificationRead.model_validate(n) for n in notifications],
    )


@router.patch("/readAll", response_model=NotificationsReadAllResponse)
async def mark_all_notifications_read(
    user_id: UUID = Depends(get_current_user_id),
    ledger: NotificationLedger = Depends(get_notification_ledger),
) -> NotificationsReadAllResponse:
    """Mark every notification addressed to the caller read."""
    updated = await ledger.mark_all_read(user_id)
    return NotificationsReadAllResponse(updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    ledger: NotificationLedger = Depends(get_notification_ledger),
) -> NotificationRead:
    """Mark one of the caller's notifications read."""
    notification = await ledger.mark_read(notification_id, user_id)
    return NotificationRead.model_validate(notification)
