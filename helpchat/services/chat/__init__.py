"""Chat thread services.

Use explicit imports:
    from helpchat.services.chat.thread import MessageThreadService
    from helpchat.services.chat.backfill import NotificationBackfill
"""
