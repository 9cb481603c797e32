"""
File list (catalog) database helpers.

Provides stateless lookups and inserts for the `file_list` table. Each row
is one entry recovered from an evidence source; `parent_id` points at the
row of the containing directory.
"""
from __future__ import annotations

import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from .tags import FILE_LIST_ARTIFACT

_ENTRY_COLUMNS = """
    id, evidence_id, parent_id, file_path, file_name, extension,
    meta_type, size_bytes, partition_index, inode
"""


def get_file_entry(
    conn: sqlite3.Connection,
    evidence_id: int,
    file_id: int,
) -> Optional[Dict[str, Any]]:
    """
    Get a single file_list row by ID.

    Args:
        conn: Evidence database connection
        evidence_id: Evidence ID
        file_id: file_list row ID

    Returns:
        Row dict or None if no such entry exists for this evidence
    """
    sql = f"""
        SELECT {_ENTRY_COLUMNS}
        FROM file_list
        WHERE evidence_id = ? AND id = ?
    """
    cursor = conn.execute(sql, (evidence_id, file_id))
    row = cursor.fetchone()
    return _row_to_dict(cursor, row) if row else None


def get_child_entries(
    conn: sqlite3.Connection,
    evidence_id: int,
    parent_id: int,
) -> List[Dict[str, Any]]:
    """
    Get all entries whose parent is ``parent_id``.

    Rows come back in insertion (ID) order, which is the order the
    indexer discovered them in.
    """
    sql = f"""
        SELECT {_ENTRY_COLUMNS}
        FROM file_list
        WHERE evidence_id = ? AND parent_id = ?
        ORDER BY id ASC
    """
    cursor = conn.execute(sql, (evidence_id, parent_id))
    return [_row_to_dict(cursor, row) for row in cursor.fetchall()]


def get_entry_paths(
    conn: sqlite3.Connection,
    evidence_id: int,
) -> List[Dict[str, Any]]:
    """Return id, file_path, file_name and meta_type for every entry of an evidence."""
    cursor = conn.execute(
        "SELECT id, file_path, file_name, meta_type FROM file_list WHERE evidence_id = ? ORDER BY id",
        (evidence_id,),
    )
    return [_row_to_dict(cursor, row) for row in cursor.fetchall()]


def insert_file_entry(
    conn: sqlite3.Connection,
    evidence_id: int,
    *,
    file_path: str,
    file_name: str,
    parent_id: Optional[int] = None,
    meta_type: str = "reg",
    size_bytes: Optional[int] = None,
    partition_index: int = -1,
    inode: Optional[str] = None,
    import_source: Optional[str] = None,
    import_timestamp: Optional[str] = None,
) -> int:
    """
    Insert a single file_list row.

    Does not commit; callers group inserts in a transaction.

    Returns:
        New row ID
    """
    extension = _extension_of(file_name) if meta_type not in ("dir", "vdir") else None
    cursor = conn.execute(
        """
        INSERT INTO file_list (
            evidence_id, parent_id, file_path, file_name, extension,
            meta_type, size_bytes, partition_index, inode,
            import_source, import_timestamp
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            evidence_id, parent_id, file_path, file_name, extension,
            meta_type, size_bytes, partition_index, inode,
            import_source, import_timestamp,
        ),
    )
    return int(cursor.lastrowid)


def delete_file_entries(conn: sqlite3.Connection, evidence_id: int) -> int:
    """
    Delete every file_list row of an evidence (re-indexing).

    Tag associations on those rows are removed with them, since the next
    index reuses row IDs. Tags themselves stay, with recomputed usage counts.

    Does not commit; callers group this with the re-insert.

    Returns:
        Number of file_list rows deleted
    """
    conn.execute(
        "DELETE FROM tag_associations WHERE evidence_id = ? AND artifact_type = ?",
        (evidence_id, FILE_LIST_ARTIFACT),
    )
    conn.execute(
        """
        UPDATE tags SET usage_count = (
            SELECT COUNT(*) FROM tag_associations ta WHERE ta.tag_id = tags.id
        )
        WHERE evidence_id = ?
        """,
        (evidence_id,),
    )
    cursor = conn.execute("DELETE FROM file_list WHERE evidence_id = ?", (evidence_id,))
    return cursor.rowcount


def count_file_entries(conn: sqlite3.Connection, evidence_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM file_list WHERE evidence_id = ?", (evidence_id,)
    ).fetchone()
    return int(row[0])


def _extension_of(file_name: str) -> Optional[str]:
    if "." not in file_name.strip("."):
        return None
    return file_name.rsplit(".", 1)[-1].lower()


def _row_to_dict(cursor: sqlite3.Cursor, row: Iterable[Any]) -> Dict[str, Any]:
    """Build a dict from a row regardless of the connection's row_factory."""
    columns = [desc[0] for desc in cursor.description]
    return dict(zip(columns, row))
