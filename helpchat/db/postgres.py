"""PostgreSQL engine, ORM base and the request-scoped unit of work.

One AsyncSession per HTTP request. The thread service commits its own
saga steps (message row, then notification link); whatever is still
pending when the route returns is committed here. Store failures never
reach clients with driver detail: they are logged and surfaced as
DatabaseConnectionError (503).
"""

from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from helpchat.core.config import settings
from helpchat.core.exceptions import DatabaseConnectionError

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for help sessions, chat messages and notifications."""


engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

# Services keep using ORM objects after their own commits.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request's session; commit leftovers, roll back on failure."""
    try:
        async with async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("chat_store_request_failed", error=str(e))
                raise DatabaseConnectionError() from e
            except Exception:
                await session.rollback()
                raise
    except DatabaseConnectionError:
        raise
    except SQLAlchemyError as e:
        logger.error("chat_store_unavailable", error=str(e))
        raise DatabaseConnectionError("Chat store is unavailable") from e


async def close_postgres() -> None:
    """Dispose of the connection pool on shutdown."""
    logger.info("chat_store_shutdown")
    await engine.dispose()
