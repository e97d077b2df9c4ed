from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from cpadocs.config.settings import Settings
from cpadocs.logging.logger import Log

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
        application_name="cpadocs",
    )


def init_pool(settings: Settings) -> None:
    """Open the shared pool. Calling it twice replaces the previous pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
    _pool = ConnectionPool(
        build_conninfo(settings),
        min_size=1,
        max_size=settings.db_pool_max_size,
        check=ConnectionPool.check_connection,
        name="cpadocs",
        open=True,
    )
    Log.info(f"Connection pool opened for {settings.db_host}:{settings.db_port}/{settings.db_database}")


def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Borrow a pooled connection; the block commits on success and rolls back on error."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn
