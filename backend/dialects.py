"""
Supported database backends.

Each backend knows the two pieces of SQL that differ between drivers:
how positional parameters are written and how the identity column is
declared. The backend is chosen once from `Settings.db_driver`; the
insert path asks it for placeholders instead of branching on strings.
"""

from enum import Enum
from typing import List


class Backend(str, Enum):
    SQLITE = "sqlite3"
    POSTGRES = "postgres"

    def placeholders(self, count: int) -> List[str]:
        """Return `count` positional placeholders in this backend's syntax.

        SQLite (stdlib `sqlite3`, qmark style) repeats `?`. PostgreSQL is
        driven through psycopg's `RawCursor`, which passes the query to the
        server untouched, so it uses native numbered `$1, $2, ...`.
        """

        if self is Backend.POSTGRES:
            return [f"${i}" for i in range(1, count + 1)]
        return ["?"] * count

    @property
    def id_column(self) -> str:
        """DDL for the auto-incrementing identity key."""

        if self is Backend.POSTGRES:
            return "id BIGSERIAL PRIMARY KEY"
        return "id INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT"
