"""Evidence catalog database: connection, migrations and helpers."""

from .connection import EVIDENCE_MIGRATIONS_DIR, init_db, migrate, utc_now  # noqa: F401
