"""Datastore — owns the async engine and hands out sessions to the services.

Reads use :meth:`Datastore.session`; writes that must commit or roll back
as one unit use :meth:`Datastore.transaction`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from gpg_keys.datastore.engines import create_engine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.orm import DeclarativeBase

    from gpg_keys.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)

_ERR_NOT_OPEN = "Datastore is not open. Call open() first."


class Datastore:
    """Async SQLAlchemy engine plus session factory for the key store.

    Usage::

        ds = Datastore(db_config)
        await ds.open()
        async with ds.transaction() as session:
            session.add(row)
        await ds.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Return the underlying async engine."""
        if self._engine is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self, *, base: type[DeclarativeBase] | None = None) -> None:
        """Create the engine; with *base*, also create its tables."""
        self._engine = create_engine(self._config)
        # Rows stay readable after commit; records are built from them.
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.debug(
            "datastore opened at %s",
            make_url(self._config.dsn).render_as_string(hide_password=True),
        )
        if base is not None:
            async with self._engine.begin() as conn:
                await conn.run_sync(base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the engine and release pooled connections."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None

    def session(self) -> AsyncSession:
        """Return a new session; use it as an async context manager."""
        if self._sessions is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._sessions()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside one transaction.

        The transaction commits when the block exits normally and rolls
        back if it raises.
        """
        async with self.session() as session, session.begin():
            yield session
