"""Database engine factories — PostgreSQL, SQLite.

Key insertion relies on the database to arbitrate the shared key-ID
namespace, so the factory also carries the transaction isolation level
and, for SQLite, how long a writer waits on a locked database file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

if TYPE_CHECKING:
    from gpg_keys.config.settings import DatabaseConfig


def _is_sqlite(dsn: str) -> bool:
    return dsn.startswith("sqlite")


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Args:
        config: Database configuration with DSN, pool and isolation settings.

    Returns:
        A configured ``AsyncEngine`` ready for use.
    """
    kwargs: dict[str, Any] = {
        "echo": config.debug_sql,
    }
    if config.isolation_level:
        kwargs["isolation_level"] = config.isolation_level

    if _is_sqlite(config.dsn):
        kwargs["connect_args"] = {"timeout": config.busy_timeout}
    else:
        kwargs["pool_size"] = config.max_idle_connections
        kwargs["max_overflow"] = config.max_open_connections - config.max_idle_connections
        kwargs["pool_pre_ping"] = True

    return create_async_engine(config.dsn, **kwargs)
