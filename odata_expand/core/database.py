"""
odata_expand.core.database - Async persistence context
=======================================================

Engine and session factory management for the SQLAlchemy asyncio stack.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger("odata_expand.database")


class Base(DeclarativeBase):
    """Declarative base for all persisted entities."""


def _safe_url(url: str) -> str:
    if "@" in url:
        return url.split("@")[0].rsplit(":", 1)[0] + ":***@..."
    return url


class Database:
    """
    Owns the async engine and hands out sessions.

    Parameters
    ----------
    url : str
        SQLAlchemy async URL, e.g. ``sqlite+aiosqlite:///./persons.db``
    echo : bool
        Echo SQL statements

    Examples
    --------
    >>> db = Database("sqlite+aiosqlite:///./persons.db")
    >>> await db.create_all()
    >>> async with db.session() as session:
    ...     ...
    >>> await db.dispose()
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            connect_args=connect_args,
        )
        # committed entities are returned to the caller after the session closes
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Using database: %s", _safe_url(url))

    def session(self) -> AsyncSession:
        """Open a new session; use as ``async with db.session() as s``."""
        return self.session_factory()

    async def create_all(self) -> None:
        """Create all tables registered on :class:`Base`."""
        # model modules must be imported so their tables are registered
        from odata_expand.persons import entities  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Dispose the engine's connection pool."""
        await self.engine.dispose()
        logger.info("Database engine disposed")

