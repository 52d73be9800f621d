from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from app.config.settings import Settings


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Explicit database handle owning a connection pool.

    Constructed once by the hosting entry point and passed to repositories.
    The pool is opened lazily on first use so that a cold start that
    short-circuits (e.g. an already finished job) never touches the database.
    """

    def __init__(self, settings: Settings) -> None:
        self._pool = ConnectionPool(
            build_conninfo(settings),
            min_size=1,
            max_size=settings.db_pool_max_size,
            open=False,
        )
        self._opened = False

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a connection from the pool. Caller manages commit/rollback."""
        if not self._opened:
            self._pool.open()
            self._opened = True
        with self._pool.connection() as conn:
            yield conn

    def close(self) -> None:
        """Close the pool. Safe to call more than once."""
        if self._opened:
            self._pool.close()
            self._opened = False
