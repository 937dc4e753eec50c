"""Participant checks for help sessions and chat messages.

Pure predicates over already-loaded records. The ``require_*`` variants
raise the matching ForbiddenError and are called before any write.
"""

from uuid import UUID

from helpchat.core.exceptions import (
    NotAParticipantError,
    NotReceiverError,
    NotSenderError,
)
from helpchat.models.chat_message import ChatMessage
from helpchat.models.help_session import HelpSession


def is_participant(session: HelpSession, user_id: UUID) -> bool:
    return user_id in (session.requester_id, session.helper_id)


def resolve_counterpart(session: HelpSession, user_id: UUID) -> UUID:
    """Return the other participant of the session."""
    if user_id == session.requester_id:
        return session.helper_id
    if user_id == session.helper_id:
        return session.requester_id
    raise NotAParticipantError()


def is_receiver(message: ChatMessage, user_id: UUID) -> bool:
    return message.receiver_id == user_id


def is_sender(message: ChatMessage, user_id: UUID) -> bool:
    return message.sender_id == user_id


def require_participant(session: HelpSession, user_id: UUID) -> None:
    if not is_participant(session, user_id):
        raise NotAParticipantError()


def require_receiver(message: ChatMessage, user_id: UUID) -> None:
    if not is_receiver(message, user_id):
        raise NotReceiverError()


def require_sender(message: ChatMessage, user_id: UUID) -> None:
    if not is_sender(message, user_id):
        raise NotSenderError()
