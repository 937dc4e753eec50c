"""Chat message endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile

from helpchat.api.deps import get_current_user_id, get_message_thread_service
from helpchat.schemas.chat import (
    ChatMessageRead,
    ChatReadAllResponse,
    ChatThreadResponse,
)
from helpchat.services.chat.thread import MessageThreadService
from helpchat.services.storage import AttachmentUpload

router = APIRouter(prefix="/chat", tags=["chat"])


async def _read_uploads(files: list[UploadFile] | None) -> list[AttachmentUpload]:
    """Buffer multipart files in the order the client sent them."""
    if not files:
        return []
    return [
        AttachmentUpload(
            filename=f.filename or "attachment",
            content=await f.read(),
            content_type=f.content_type,
        )
        for f in files
    ]


@router.post("/{session_id}", response_model=ChatMessageRead, status_code=201)
async def send_message(
    session_id: UUID,
    content: str = Form(...),
    attachments: list[UploadFile] | None = File(None),
    user_id: UUID = Depends(get_current_user_id),
    thread: MessageThreadService = Depends(get_message_thread_service),
) -> ChatMessageRead:
    """Send a message to the other participant of an active session."""
    message = await thread.send_message(
        session_id=session_id,
        caller_id=user_id,
        content=content,
        attachments=await _read_uploads(attachments),
    )
    return ChatMessageRead.model_validate(message)


@router.get("/{session_id}", response_model=ChatThreadResponse)
async def list_messages(
    session_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    thread: MessageThreadService = Depends(get_message_thread_service),
) -> ChatThreadResponse:
    """List the session's messages, oldest first."""
    messages = await thread.list_messages(session_id=session_id, caller_id=user_id)
    return ChatThreadResponse(
        session_id=session_id,
        total=len(messages),
        messages=[ChatMessageRead.model_validate(m) for m in messages],
    )


@router.put("/{message_id}", response_model=ChatMessageRead)
async def edit_message(
    message_id: int,
    content: str | None = Form(None),
    attachments: list[UploadFile] | None = File(None),
    user_id: UUID = Depends(get_current_user_id),
    thread: MessageThreadService = Depends(get_message_thread_service),
) -> ChatMessageRead:
    """Edit an unread message within the edit window."""
    uploads = await _read_uploads(attachments)
    message = await thread.edit_message(
        message_id=message_id,
        caller_id=user_id,
        content=content,
        attachments=uploads or None,
    )
    return ChatMessageRead.model_validate(message)


@router.patch("/{message_id}/read", response_model=ChatMessageRead)
async def mark_message_read(
    message_id: int,
    user_id: UUID = Depends(get_current_user_id),
    thread: MessageThreadService = Depends(get_message_thread_service),
) -> ChatMessageRead:
    """Mark a message, and the caller's whole unread backlog in its session, read."""
    message = await thread.mark_message_read(message_id=message_id, caller_id=user_id)
    return ChatMessageRead.model_validate(message)


@router.patch("/{session_id}/readAll", response_model=ChatReadAllResponse)
async def mark_all_messages_read(
    session_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    thread: MessageThreadService = Depends(get_message_thread_service),
) -> ChatReadAllResponse:
    """Mark every message addressed to the caller in the session read."""
    updated = await thread.mark_all_messages_read(
        session_id=session_id, caller_id=user_id
    )
    return ChatReadAllResponse(session_id=session_id, updated=updated)
