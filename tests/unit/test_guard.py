"""Unit tests for participant checks.

Tests:
  - requester and helper are participants, anyone else is not
  - resolve_counterpart returns the other party and refuses outsiders
  - require_receiver / require_sender raise the matching ForbiddenError
"""

from __future__ import annotations

import uuid

import pytest

from helpchat.core.exceptions import (
    ForbiddenError,
    NotAParticipantError,
    NotReceiverError,
    NotSenderError,
)
from helpchat.models.chat_message import ChatMessage
from helpchat.models.help_session import HelpSession
from helpchat.services.chat.guard import (
    is_participant,
    is_receiver,
    is_sender,
    require_participant,
    require_receiver,
    require_sender,
    resolve_counterpart,
)

A = uuid.UUID("00000000-0000-0000-0000-00000000000a")
B = uuid.UUID("00000000-0000-0000-0000-00000000000b")
C = uuid.UUID("00000000-0000-0000-0000-00000000000c")


@pytest.fixture
def session() -> HelpSession:
    return HelpSession(id=uuid.uuid4(), requester_id=A, helper_id=B)


@pytest.fixture
def message(session: HelpSession) -> ChatMessage:
    return ChatMessage(
        session_id=session.id, sender_id=A, receiver_id=B, content="hello"
    )


class TestSessionParticipants:
    """Tests for is_participant, resolve_counterpart and require_participant."""

    def test_both_parties_are_participants(self, session: HelpSession) -> None:
        assert is_participant(session, A) is True
        assert is_participant(session, B) is True

    def test_outsider_is_not_participant(self, session: HelpSession) -> None:
        assert is_participant(session, C) is False

    def test_counterpart_of_requester_is_helper(self, session: HelpSession) -> None:
        assert resolve_counterpart(session, A) == B

    def test_counterpart_of_helper_is_requester(self, session: HelpSession) -> None:
        assert resolve_counterpart(session, B) == A

    def test_outsider_has_no_counterpart(self, session: HelpSession) -> None:
        with pytest.raises(NotAParticipantError):
            resolve_counterpart(session, C)

    def test_require_participant(self, session: HelpSession) -> None:
        require_participant(session, A)
        with pytest.raises(ForbiddenError) as exc_info:
            require_participant(session, C)
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "NOT_A_PARTICIPANT"


class TestMessageRoles:
    """Tests for sender/receiver checks on a message."""

    def test_roles(self, message: ChatMessage) -> None:
        assert is_sender(message, A) and not is_sender(message, B)
        assert is_receiver(message, B) and not is_receiver(message, A)

    def test_sender_cannot_act_as_receiver(self, message: ChatMessage) -> None:
        with pytest.raises(NotReceiverError):
            require_receiver(message, A)

    def test_receiver_cannot_act_as_sender(self, message: ChatMessage) -> None:
        with pytest.raises(NotSenderError):
            require_sender(message, B)

    def test_outsider_is_neither(self, message: ChatMessage) -> None:
        with pytest.raises(NotReceiverError):
            require_receiver(message, C)
        with pytest.raises(NotSenderError):
            require_sender(message, C)
