import sqlite3
from pathlib import Path

import pytest

from core.database import init_db

pytest_plugins = ["tests.fixtures.catalog"]


@pytest.fixture()
def evidence_conn(tmp_path: Path) -> sqlite3.Connection:
    """Open a migrated evidence database in a temporary case folder."""
    conn = init_db(tmp_path / "case_workspace" / "evidence_1.sqlite")
    try:
        yield conn
    finally:
        conn.close()
