"""
Async SQLAlchemy engine, session factory and store backend.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from issuedesk.db.base import Base
from issuedesk.stores.base import IssueStore, StoreBackend, UserStore
from issuedesk.stores.memory import MemoryBackend
from issuedesk.stores.sql import SqlIssueStore, SqlUserStore

# Ensure all models are imported so metadata.create_all can see them
from issuedesk.models.issue import Issue  # noqa: F401
from issuedesk.models.user import User  # noqa: F401

logger = logging.getLogger(__name__)


def _engine_args(database_url: str) -> dict[str, Any]:
    engine_args: dict[str, Any] = {
        "echo": False,
        "pool_pre_ping": True,
    }
    if "postgresql" in database_url or "mysql" in database_url:
        engine_args.update(
            {
                "pool_size": 20,
                "max_overflow": 10,
                "pool_recycle": 300,
            }
        )
    elif database_url.startswith("sqlite") and ":memory:" in database_url:
        # one shared connection, otherwise every session sees an empty database
        engine_args.update(
            {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        )
    return engine_args


class SqlBackend(StoreBackend):
    """Store backend over any async SQLAlchemy driver."""

    def __init__(self, database_url: str):
        self.engine = create_async_engine(database_url, **_engine_args(database_url))
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def connect(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialised")

    async def dispose(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    @asynccontextmanager
    async def user_store(self) -> AsyncIterator[UserStore]:
        async with self.session() as session:
            yield SqlUserStore(session)

    @asynccontextmanager
    async def issue_store(self) -> AsyncIterator[IssueStore]:
        async with self.session() as session:
            yield SqlIssueStore(session)


def create_backend(database_url: str) -> StoreBackend:
    """Pick the store backend for *database_url*."""
    if database_url.startswith("memory://"):
        return MemoryBackend()
    return SqlBackend(database_url)
