"""
Catalog indexing - populate file_list from an evidence source.

Walks an evidence filesystem breadth-first from its root and records one
`file_list` row per entry, linking each row to its directory through
`parent_id`. Also provides filename-pattern tagging so a freshly indexed
catalog can be flagged for export from the command line.
"""
from __future__ import annotations

import fnmatch
import sqlite3
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Set, Tuple

from .database import utc_now
from .database.helpers import (
    delete_file_entries,
    get_entry_paths,
    get_or_create_tag,
    insert_file_entry,
    tag_file_entry,
)
from .evidence_fs import EvidenceFS
from .logging import get_logger

__all__ = ["IndexResult", "index_evidence_tree", "tag_matching_entries"]

LOGGER = get_logger("core.indexer")

IMPORT_SOURCE = "hitsaver"


@dataclass
class IndexResult:
    """
    Result of catalog indexing.

    Attributes:
        success: True if the walk completed and rows were committed
        total_entries: Rows added below the root
        directories: Directory rows among them
        unreadable_directories: Directories whose listing failed
        duration_seconds: Time taken
        error_message: Error description if success is False
    """
    success: bool
    total_entries: int = 0
    directories: int = 0
    unreadable_directories: int = 0
    duration_seconds: float = 0.0
    error_message: Optional[str] = None


def index_evidence_tree(
    conn: sqlite3.Connection,
    evidence_id: int,
    evidence_fs: EvidenceFS,
    *,
    replace: bool = True,
) -> IndexResult:
    """
    Build the file catalog of ``evidence_fs``.

    Args:
        conn: Evidence database connection
        evidence_id: Evidence ID for file_list rows
        evidence_fs: Source to walk
        replace: Delete existing rows of this evidence, and the tag
            associations on them, first

    Returns:
        IndexResult with counts
    """
    start = time.perf_counter()
    imported_at = utc_now()
    partition_index = getattr(evidence_fs, "partition_index", -1)
    total = 0
    directories = 0
    unreadable = 0

    try:
        with conn:
            if replace:
                removed = delete_file_entries(conn, evidence_id)
                if removed:
                    LOGGER.info("Removed %d existing file_list row(s) for evidence %d", removed, evidence_id)

            root_id = insert_file_entry(
                conn, evidence_id,
                file_path="/", file_name="", meta_type="dir",
                partition_index=partition_index,
                import_source=IMPORT_SOURCE, import_timestamp=imported_at,
            )
            queue: Deque[Tuple[int, str]] = deque([(root_id, "/")])
            visited_inodes: Set[int] = set()

            while queue:
                parent_id, dir_path = queue.popleft()
                try:
                    children = evidence_fs.list_directory(dir_path)
                except (OSError, ValueError) as exc:
                    unreadable += 1
                    LOGGER.warning("Cannot list %s: %s", dir_path, exc)
                    continue

                for child in children:
                    child_path = f"{dir_path.rstrip('/')}/{child.name}"
                    row_id = insert_file_entry(
                        conn, evidence_id,
                        file_path=child_path,
                        file_name=child.name,
                        parent_id=parent_id,
                        meta_type=child.meta_type,
                        size_bytes=child.size_bytes,
                        partition_index=partition_index,
                        inode=None if child.inode is None else str(child.inode),
                        import_source=IMPORT_SOURCE,
                        import_timestamp=imported_at,
                    )
                    total += 1
                    if not child.is_dir:
                        continue
                    directories += 1
                    if child.inode is not None:
                        if child.inode in visited_inodes:
                            LOGGER.debug("Directory loop detected at %s (inode %d), not descending",
                                         child_path, child.inode)
                            continue
                        visited_inodes.add(child.inode)
                    queue.append((row_id, child_path))

                if total and total % 10000 == 0:
                    LOGGER.debug("Indexing progress: %d entries", total)
    except sqlite3.Error as exc:
        LOGGER.exception("Indexing of %s failed", evidence_fs.source_path)
        return IndexResult(
            success=False,
            duration_seconds=time.perf_counter() - start,
            error_message=str(exc),
        )

    duration = time.perf_counter() - start
    LOGGER.info(
        "Indexed %d entries (%d directories) from %s in %.2fs",
        total, directories, evidence_fs.source_path, duration,
    )
    return IndexResult(
        success=True,
        total_entries=total,
        directories=directories,
        unreadable_directories=unreadable,
        duration_seconds=duration,
    )


def tag_matching_entries(
    conn: sqlite3.Connection,
    evidence_id: int,
    pattern: str,
    tag_name: str,
    *,
    tagged_by: str = "pattern_match",
) -> int:
    """
    Tag every catalog entry matching a wildcard pattern.

    Patterns containing '/' are matched against the full evidence path,
    others against the entry name. Matching is case-insensitive.

    Returns:
        Number of newly tagged entries
    """
    lowered = pattern.lower()
    match_path = "/" in pattern
    tagged = 0
    with conn:
        tag_id = get_or_create_tag(conn, evidence_id, tag_name, created_by=tagged_by)
        for row in get_entry_paths(conn, evidence_id):
            if row["file_path"] == "/":  # root row
                continue
            subject = row["file_path"] if match_path else row["file_name"]
            if not fnmatch.fnmatchcase(subject.lower(), lowered):
                continue
            if tag_file_entry(conn, evidence_id, tag_id, int(row["id"]), tagged_by=tagged_by):
                tagged += 1

    LOGGER.info("Tagged %d entr%s matching %r as %r", tagged, "y" if tagged == 1 else "ies", pattern, tag_name)
    return tagged
