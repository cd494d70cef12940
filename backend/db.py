"""
Database connection helper.

This module centralizes how connections are created for each backend.
Every call opens a fresh connection and closes it on exit, so concurrent
requests never share a connection object.

- SQLite: stdlib `sqlite3`, with a busy timeout so parallel writers wait
  on the file lock instead of failing straight away.
- PostgreSQL: `psycopg` with `RawCursor`, so queries keep the server's
  native `$1, $2, ...` placeholders.

Usage:
    from db import get_conn
    with get_conn(settings) as conn:
        conn.execute("SELECT 1")
"""

import sqlite3
from contextlib import contextmanager
from typing import Iterator

import psycopg

from dialects import Backend
from settings import Settings

CONNECT_TIMEOUT = 5

# Base error classes of every supported driver.
DB_ERRORS = (sqlite3.Error, psycopg.Error)


@contextmanager
def get_conn(settings: Settings) -> Iterator:
    """Yield a DB-API connection for `settings.db_driver`.

    The caller commits explicitly. The connection is closed when the
    block exits, whether or not it raised.
    """

    if settings.db_driver is Backend.POSTGRES:
        with psycopg.connect(
            settings.db,
            connect_timeout=CONNECT_TIMEOUT,
            cursor_factory=psycopg.RawCursor,
        ) as conn:
            yield conn
        return

    conn = sqlite3.connect(settings.db, timeout=CONNECT_TIMEOUT)
    try:
        yield conn
    finally:
        conn.close()
