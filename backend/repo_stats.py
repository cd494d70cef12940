"""
Repository: SQL operations for `stats`.

This file contains only DB interaction code. It maps a `StatsRecord` to
an INSERT whose column list depends on which optional fields are present,
and owns the DDL for the table. Keep request handling out of this module.

Important notes:
- Column names come from the fixed tuples below and placeholders from
  `Backend.placeholders()`. Nothing taken from a request is ever
  formatted into SQL; every value is a bound parameter.
- Absent optional fields are left out of the statement entirely rather
  than bound as NULL, so the statement shape varies per report.
- `save` commits after its single INSERT; a failure leaves no row.
"""

from typing import Any, List, Tuple

import structlog

from db import DB_ERRORS, get_conn
from dialects import Backend
from exceptions import PersistError, ProvisionError
from models import StatsRecord
from settings import Settings

log = structlog.get_logger(__name__)

TABLE = "stats"

# Written on every row.
REQUIRED_COLUMNS = ("homeserver", "local_timestamp", "remote_addr")

# Written only when present, in this order.
REPORT_COLUMNS = (
    "remote_timestamp",
    "uptime_seconds",
    "total_users",
    "total_nonbridged_users",
    "total_room_count",
    "daily_active_users",
    "daily_active_rooms",
    "daily_messages",
    "daily_sent_messages",
)
HEADER_COLUMNS = ("forwarded_for", "user_agent")

COLUMN_TYPES = {
    "homeserver": "VARCHAR(256)",
    "local_timestamp": "BIGINT",
    "remote_timestamp": "BIGINT",
    "remote_addr": "TEXT",
    "forwarded_for": "TEXT",
    "uptime_seconds": "BIGINT",
    "total_users": "BIGINT",
    "total_nonbridged_users": "BIGINT",
    "total_room_count": "BIGINT",
    "daily_active_users": "BIGINT",
    "daily_active_rooms": "BIGINT",
    "daily_messages": "BIGINT",
    "daily_sent_messages": "BIGINT",
    "user_agent": "TEXT",
}


def create_table_sql(backend: Backend) -> str:
    columns = [backend.id_column]
    columns += [f"{name} {sql_type}" for name, sql_type in COLUMN_TYPES.items()]
    return f"CREATE TABLE IF NOT EXISTS {TABLE} (\n    " + ",\n    ".join(columns) + "\n)"


def build_insert(record: StatsRecord, backend: Backend) -> Tuple[str, List[Any]]:
    """Return the INSERT statement and its parameters for `record`.

    The column list always starts with `REQUIRED_COLUMNS`, followed by each
    present optional column in canonical order. The parameter list lines up
    with the columns one to one.
    """

    report = record.report
    cols = list(REQUIRED_COLUMNS)
    vals: List[Any] = [report.homeserver, record.local_timestamp, record.remote_addr]

    for name in REPORT_COLUMNS:
        value = getattr(report, name)
        if value is not None:
            cols.append(name)
            vals.append(value)
    for name in HEADER_COLUMNS:
        value = getattr(record, name)
        if value:
            cols.append(name)
            vals.append(value)

    sql = (
        f"INSERT INTO {TABLE} ({', '.join(cols)}) "
        f"VALUES ({', '.join(backend.placeholders(len(vals)))})"
    )
    return sql, vals


class StatsRepo:
    """DB access only. No request handling here.

    Responsibilities:
    - Provision the `stats` table once at startup
    - Map `StatsRecord` -> SQL parameters and insert one row per report
    - Translate driver errors into `ProvisionError` / `PersistError`
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.backend = settings.db_driver

    def provision_schema(self) -> None:
        """Create the `stats` table if it does not exist yet.

        Safe to run repeatedly; an existing table and its rows are left
        alone. Raises `ProvisionError` if the backend rejects the DDL.
        """

        try:
            with get_conn(self.settings) as conn:
                conn.execute(create_table_sql(self.backend))
                conn.commit()
        except DB_ERRORS as exc:
            raise ProvisionError("Error creating database") from exc
        log.info("schema provisioned", table=TABLE, backend=self.backend.value)

    def save(self, record: StatsRecord) -> None:
        """Insert `record` as a single row and commit.

        Raises `PersistError` wrapping the driver error on any failure.
        There is no retry.
        """

        sql, params = build_insert(record, self.backend)
        try:
            with get_conn(self.settings) as conn:
                conn.execute(sql, params)
                conn.commit()
        except DB_ERRORS as exc:
            raise PersistError("Error saving to DB") from exc
