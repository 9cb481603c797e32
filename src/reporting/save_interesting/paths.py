"""
Destination path rules for exported entries.

Every exported top-level entry gets an ``<id>_<name>`` segment under its
set label, so two entries sharing a name never share a destination:

    <output_root>/<set_label>/<id>_<name>             regular file
    <output_root>/<set_label>/<id>_<name>/<name>/     directory content root

Entries below an exported directory keep their bare names.
"""
from __future__ import annotations

from pathlib import Path

from core.catalog import CatalogEntry


def entry_segment(entry_id: int, name: str) -> str:
    """Return the identifier-prefixed path segment for an entry."""
    return f"{entry_id}_{name}"


def set_label_root(output_root: Path, set_label: str) -> Path:
    return output_root / set_label


def file_destination(output_root: Path, set_label: str, entry: CatalogEntry) -> Path:
    """Destination of a regular-file hit."""
    return set_label_root(output_root, set_label) / entry_segment(entry.id, entry.name)


def directory_destination(output_root: Path, set_label: str, entry: CatalogEntry) -> Path:
    """Directory that receives the content of a directory hit."""
    return set_label_root(output_root, set_label) / entry_segment(entry.id, entry.name) / entry.name


def child_destination(parent_dir: Path, child: CatalogEntry) -> Path:
    """Destination of an entry nested below an exported directory."""
    return parent_dir / child.name
