"""
Tag database helpers.

Tags are the set labels under which catalog entries are flagged as
interesting. Tags live in `tags`; the link to a `file_list` row lives in
`tag_associations` with artifact_type 'file_list'.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

FILE_LIST_ARTIFACT = "file_list"


# -----------------------------------------------------------------------------
# Tag CRUD Operations
# -----------------------------------------------------------------------------

def get_tag_by_name(
    conn: sqlite3.Connection,
    evidence_id: int,
    name: str,
) -> Optional[Dict[str, Any]]:
    """
    Get a tag by name (case-insensitive).

    Args:
        conn: Evidence database connection
        evidence_id: Evidence ID
        name: Tag name (case-insensitive lookup)

    Returns:
        Tag dict or None if not found
    """
    sql = """
        SELECT id, name, name_normalized, usage_count, created_by, created_at_utc
        FROM tags
        WHERE evidence_id = ? AND name_normalized = ?
    """
    cursor = conn.execute(sql, (evidence_id, name.lower()))
    row = cursor.fetchone()
    if row is None:
        return None
    return dict(zip([desc[0] for desc in cursor.description], row))


def insert_tag(
    conn: sqlite3.Connection,
    evidence_id: int,
    name: str,
    created_by: str = "manual",
) -> int:
    """
    Insert a new tag.

    Raises:
        sqlite3.IntegrityError: If tag already exists (use get_or_create_tag instead)
    """
    sql = """
        INSERT INTO tags (evidence_id, name, name_normalized, created_by)
        VALUES (?, ?, ?, ?)
    """
    cursor = conn.execute(sql, (evidence_id, name, name.lower(), created_by))
    return int(cursor.lastrowid)


def get_or_create_tag(
    conn: sqlite3.Connection,
    evidence_id: int,
    name: str,
    created_by: str = "manual",
) -> int:
    """Get existing tag ID or create new tag."""
    existing = get_tag_by_name(conn, evidence_id, name)
    if existing:
        return int(existing["id"])
    return insert_tag(conn, evidence_id, name, created_by)


def tag_file_entry(
    conn: sqlite3.Connection,
    evidence_id: int,
    tag_id: int,
    file_id: int,
    tagged_by: str = "manual",
) -> bool:
    """
    Associate a tag with a file_list entry.

    Returns:
        True if a new association was created, False if it already existed
    """
    tagged_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    cursor = conn.execute(
        """
        INSERT OR IGNORE INTO tag_associations
            (tag_id, evidence_id, artifact_type, artifact_id, tagged_by, tagged_at_utc)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (tag_id, evidence_id, FILE_LIST_ARTIFACT, file_id, tagged_by, tagged_at),
    )
    if cursor.rowcount:
        conn.execute("UPDATE tags SET usage_count = usage_count + 1 WHERE id = ?", (tag_id,))
        return True
    return False


# -----------------------------------------------------------------------------
# Hit Queries
# -----------------------------------------------------------------------------

def get_tagged_file_hits(
    conn: sqlite3.Connection,
    evidence_id: int,
) -> List[Dict[str, Any]]:
    """
    Get every (file_list entry, tag name) pair of an evidence.

    Rows are ordered by association ID so entries and their labels keep
    the order in which they were flagged. An entry tagged twice appears
    on two rows.

    Returns:
        List of dicts with keys: file_id, tag_name
    """
    sql = """
        SELECT ta.artifact_id AS file_id, t.name AS tag_name
        FROM tag_associations ta
        JOIN tags t ON t.id = ta.tag_id
        WHERE ta.evidence_id = ? AND ta.artifact_type = ?
        ORDER BY ta.id ASC
    """
    rows = conn.execute(sql, (evidence_id, FILE_LIST_ARTIFACT)).fetchall()
    return [{"file_id": int(row[0]), "tag_name": row[1]} for row in rows]
