"""
Evidence database connection and schema migrations.

An evidence database is a single SQLite file. Its schema is built from the
numbered scripts in ``migrations_evidence/`` (``0001_file_list.sql``, ...);
each applied number is recorded in ``schema_version`` so opening an
existing database only runs the scripts it has not seen.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Tuple

from core.logging import get_logger

LOGGER = get_logger("core.database.connection")

EVIDENCE_MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations_evidence"

BUSY_TIMEOUT_MS = 10000


def init_db(db_path: Path, migrations_dir: Optional[Path] = None) -> sqlite3.Connection:
    """
    Open (or create) an evidence database and bring its schema up to date.

    Foreign keys are enforced (file_list parent links cascade on delete)
    and rows come back as ``sqlite3.Row``.

    Raises:
        RuntimeError: If a migration script fails
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.debug("Opening evidence database %s", db_path)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    conn.row_factory = sqlite3.Row
    migrate(conn, migrations_dir)
    return conn


def migrate(conn: sqlite3.Connection, migrations_dir: Optional[Path] = None) -> None:
    """Apply every migration script not yet recorded in schema_version."""
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_version ("
        " version INTEGER PRIMARY KEY,"
        " applied_at_utc TEXT NOT NULL)"
    )
    applied = {int(row[0]) for row in conn.execute("SELECT version FROM schema_version")}

    for version, script in _migration_scripts(migrations_dir or EVIDENCE_MIGRATIONS_DIR):
        if version in applied:
            continue
        LOGGER.info("Applying evidence schema migration %s", script.name)
        try:
            with conn:
                conn.executescript(script.read_text(encoding="utf-8"))
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at_utc) VALUES (?, ?)",
                    (version, utc_now()),
                )
        except sqlite3.DatabaseError as exc:
            LOGGER.exception("Migration %s failed", script.name)
            raise RuntimeError(f"Failed to apply migration {script}") from exc


def _migration_scripts(migrations_dir: Path) -> Iterator[Tuple[int, Path]]:
    """Yield (version, path) for ``NNNN_name.sql`` files in version order."""
    scripts = [(int(path.name.split("_", 1)[0]), path) for path in migrations_dir.glob("*.sql")]
    yield from sorted(scripts)


def utc_now() -> str:
    """Current UTC time as ISO 8601 without microseconds."""
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()
