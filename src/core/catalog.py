"""
Read-only views over the evidence file catalog.

`FileCatalog` answers identifier and parent/child lookups against the
`file_list` table. `TaggedHitSource` turns tag associations into the hit
list consumed by the interesting-files export.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .database.helpers import get_child_entries, get_file_entry, get_tagged_file_hits
from .enums import EntryKind
from .logging import get_logger

LOGGER = get_logger("core.catalog")


@dataclass(frozen=True)
class CatalogEntry:
    """
    One catalog record, as needed for export.

    Attributes:
        id: Catalog-assigned identifier (file_list row ID)
        name: Display name; not unique across the catalog
        kind: FILE or DIRECTORY
        parent_id: Row ID of the containing directory (None for the root)
        file_path: Full path inside the evidence source
        size_bytes: Size reported by the catalog, if known
        meta_type: Raw metadata type from the catalog (reg, dir, lnk, ...)
        partition_index: Partition the entry was recovered from
    """
    id: int
    name: str
    kind: EntryKind
    parent_id: Optional[int] = None
    file_path: str = ""
    size_bytes: Optional[int] = None
    meta_type: str = "reg"
    partition_index: int = -1

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CatalogEntry":
        meta_type = row.get("meta_type") or "reg"
        partition_index = row.get("partition_index")
        return cls(
            id=int(row["id"]),
            name=row["file_name"],
            kind=EntryKind.from_meta_type(meta_type),
            parent_id=row.get("parent_id"),
            file_path=row.get("file_path") or "",
            size_bytes=row.get("size_bytes"),
            meta_type=meta_type,
            partition_index=-1 if partition_index is None else int(partition_index),
        )


@dataclass(frozen=True)
class Hit:
    """A catalog entry flagged under zero or more set labels."""

    entry_id: int
    set_labels: Tuple[str, ...] = field(default_factory=tuple)


class FileCatalog:
    """Identifier and parent/child lookups over one evidence's file_list."""

    def __init__(self, conn: sqlite3.Connection, evidence_id: int) -> None:
        self.conn = conn
        self.evidence_id = evidence_id

    def resolve(self, entry_id: int) -> Optional[CatalogEntry]:
        """Return the entry with this ID, or None if the catalog has none."""
        row = get_file_entry(self.conn, self.evidence_id, entry_id)
        if row is None:
            LOGGER.debug("No file_list entry %d for evidence %d", entry_id, self.evidence_id)
            return None
        return CatalogEntry.from_row(row)

    def query_children(self, parent_id: int) -> List[CatalogEntry]:
        """Return the entries directly contained in ``parent_id``, in catalog order."""
        rows = get_child_entries(self.conn, self.evidence_id, parent_id)
        return [CatalogEntry.from_row(row) for row in rows]


class TaggedHitSource:
    """
    Hit list built from tag associations on file_list entries.

    Each tagged entry yields one Hit carrying every tag name attached to it,
    in the order the tags were applied. ``set_labels`` restricts the hits to
    the named tags (case-insensitive); entries left without a label are
    dropped.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        evidence_id: int,
        set_labels: Optional[Iterable[str]] = None,
    ) -> None:
        self.conn = conn
        self.evidence_id = evidence_id
        self.set_labels = {label.lower() for label in set_labels} if set_labels else None

    def list_hits(self) -> List[Hit]:
        grouped: Dict[int, List[str]] = {}
        for row in get_tagged_file_hits(self.conn, self.evidence_id):
            tag_name = row["tag_name"]
            if self.set_labels is not None and tag_name.lower() not in self.set_labels:
                continue
            labels = grouped.setdefault(row["file_id"], [])
            if tag_name not in labels:
                labels.append(tag_name)

        hits = [Hit(entry_id=file_id, set_labels=tuple(labels)) for file_id, labels in grouped.items()]
        LOGGER.debug("Collected %d tagged hit(s) for evidence %d", len(hits), self.evidence_id)
        return hits
