import psycopg
import pytest

import db
from dialects import Backend
from exceptions import PersistError
from models import StatsRecord, StatsReport
from repo_stats import StatsRepo
from settings import Settings

PG_URL = "postgresql://u:p@localhost:5432/stats"


class FakePgConn:
    def __init__(self):
        self.executed = []
        self.committed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.executed.append((sql, params))

    def commit(self):
        self.committed = True


@pytest.fixture
def fake_pg(monkeypatch):
    conn = FakePgConn()
    calls = []

    def connect(*args, **kwargs):
        calls.append((args, kwargs))
        return conn

    monkeypatch.setattr(db.psycopg, "connect", connect)
    return conn, calls


def test_postgres_save_uses_raw_cursor_and_numbered_placeholders(fake_pg):
    conn, calls = fake_pg
    repo = StatsRepo(Settings(db_driver=Backend.POSTGRES, db=PG_URL))
    record = StatsRecord(
        report=StatsReport(homeserver="a.org", total_users=3),
        local_timestamp=1700000000,
        remote_addr="10.0.0.1:80",
    )

    repo.save(record)

    args, kwargs = calls[0]
    assert args == (PG_URL,)
    assert kwargs["cursor_factory"] is psycopg.RawCursor
    assert kwargs["connect_timeout"] == db.CONNECT_TIMEOUT
    assert conn.executed == [
        (
            "INSERT INTO stats (homeserver, local_timestamp, remote_addr, total_users) "
            "VALUES ($1, $2, $3, $4)",
            ["a.org", 1700000000, "10.0.0.1:80", 3],
        )
    ]
    assert conn.committed


def test_postgres_provision_runs_bigserial_ddl(fake_pg):
    conn, _ = fake_pg

    StatsRepo(Settings(db_driver=Backend.POSTGRES, db=PG_URL)).provision_schema()

    sql, params = conn.executed[0]
    assert "id BIGSERIAL PRIMARY KEY" in sql
    assert params is None
    assert conn.committed


def test_postgres_connection_failure_raises_persist_error(monkeypatch):
    def connect(*args, **kwargs):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(db.psycopg, "connect", connect)
    repo = StatsRepo(Settings(db_driver=Backend.POSTGRES, db=PG_URL))

    with pytest.raises(PersistError) as info:
        repo.save(
            StatsRecord(
                report=StatsReport(homeserver="a.org"),
                local_timestamp=1,
                remote_addr="10.0.0.1:80",
            )
        )
    assert isinstance(info.value.__cause__, psycopg.OperationalError)
