"""Database engine and session factory.

Use explicit imports: ``from helpchat.db.postgres import Base``.
"""
