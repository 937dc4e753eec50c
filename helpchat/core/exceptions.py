"""Custom exception classes for structured error handling.

Every domain failure is a HelpChatError carrying a stable ``code``, a
human-readable ``message`` and the HTTP status the API layer answers with.
The intermediate classes mirror the error taxonomy (not found, forbidden,
invalid state, validation, dependency failure) so callers can catch a
whole category at once.
"""

from typing import Any


class HelpChatError(Exception):
    """Base exception for all help-chat errors."""

    def __init__(self, code: str, message: str, status_code: int = 500) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class NotFoundError(HelpChatError):
    """A session, message or notification does not exist."""


class ForbiddenError(HelpChatError):
    """The caller is authenticated but not allowed to touch the resource."""


class InvalidStateError(HelpChatError):
    """The resource exists but its state forbids the operation."""


class DependencyFailureError(HelpChatError):
    """An external collaborator (store, attachment storage) failed."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class SessionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Help session not found") -> None:
        super().__init__(code="SESSION_NOT_FOUND", message=message, status_code=404)


class MessageNotFoundError(NotFoundError):
    def __init__(self, message: str = "Message not found") -> None:
        super().__init__(code="MESSAGE_NOT_FOUND", message=message, status_code=404)


class NotificationNotFoundError(NotFoundError):
    def __init__(self, message: str = "Notification not found") -> None:
        super().__init__(
            code="NOTIFICATION_NOT_FOUND", message=message, status_code=404
        )


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UnauthorizedError(HelpChatError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(code="UNAUTHORIZED", message=message, status_code=401)


class NotAParticipantError(ForbiddenError):
    def __init__(self, message: str = "You are not part of this session") -> None:
        super().__init__(code="NOT_A_PARTICIPANT", message=message, status_code=403)


class NotSenderError(ForbiddenError):
    def __init__(self, message: str = "You can only edit messages you sent") -> None:
        super().__init__(code="NOT_SENDER", message=message, status_code=403)


class NotReceiverError(ForbiddenError):
    def __init__(
        self, message: str = "You are not the receiver of this message"
    ) -> None:
        super().__init__(code="NOT_RECEIVER", message=message, status_code=403)


class NotAddresseeError(ForbiddenError):
    def __init__(
        self, message: str = "This notification is addressed to another user"
    ) -> None:
        super().__init__(code="NOT_ADDRESSEE", message=message, status_code=403)


# ---------------------------------------------------------------------------
# Invalid state
# ---------------------------------------------------------------------------


class SessionNotActiveError(InvalidStateError):
    def __init__(self, message: str = "Help session is not active") -> None:
        super().__init__(code="SESSION_NOT_ACTIVE", message=message, status_code=400)


class EditWindowExpiredError(InvalidStateError):
    def __init__(
        self, message: str = "The edit window for this message has closed"
    ) -> None:
        super().__init__(code="EDIT_WINDOW_EXPIRED", message=message, status_code=400)


class AlreadyReadError(InvalidStateError):
    def __init__(
        self, message: str = "You cannot edit a message that has already been read"
    ) -> None:
        super().__init__(code="ALREADY_READ", message=message, status_code=400)


class InvalidSessionTransitionError(InvalidStateError):
    def __init__(self, message: str = "Illegal help session status change") -> None:
        super().__init__(
            code="INVALID_SESSION_TRANSITION", message=message, status_code=409
        )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ChatValidationError(HelpChatError):
    def __init__(self, message: str = "Invalid input") -> None:
        super().__init__(code="VALIDATION_ERROR", message=message, status_code=422)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


class AttachmentStorageError(DependencyFailureError):
    def __init__(self, message: str = "Attachment storage request failed") -> None:
        super().__init__(
            code="ATTACHMENT_STORAGE_ERROR", message=message, status_code=502
        )


class DatabaseConnectionError(DependencyFailureError):
    def __init__(self, message: str = "Database operation failed") -> None:
        super().__init__(code="DATABASE_ERROR", message=message, status_code=503)
