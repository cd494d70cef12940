import sqlite3
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure backend/ modules are importable when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from dialects import Backend  # noqa: E402
from main import create_app  # noqa: E402
from repo_stats import StatsRepo  # noqa: E402
from settings import Settings  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(db_driver=Backend.SQLITE, db=str(tmp_path / "stats.db"))


@pytest.fixture
def repo(settings):
    repo = StatsRepo(settings)
    repo.provision_schema()
    return repo


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def fetch_rows(settings):
    """Return every stored row as a dict, oldest first."""

    def _fetch():
        conn = sqlite3.connect(settings.db)
        conn.row_factory = sqlite3.Row
        try:
            return [dict(r) for r in conn.execute("SELECT * FROM stats ORDER BY id")]
        finally:
            conn.close()

    return _fetch
