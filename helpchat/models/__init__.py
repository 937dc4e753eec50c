"""SQLAlchemy ORM models.

Individual models should be imported explicitly:
    from helpchat.models.chat_message import ChatMessage

All models are imported here so Alembic can detect them during migration
autogenerate. This module is imported by alembic/env.py.
"""

from helpchat.models.chat_message import ChatMessage
from helpchat.models.help_session import HelpSession
from helpchat.models.notification import Notification

__all__ = [
    "HelpSession",
    "ChatMessage",
    "Notification",
]
