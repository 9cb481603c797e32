"""
Copy catalog entries out of an evidence source onto local storage.

`EvidenceFileManager.copy_file` is the byte-copy primitive used by report
modules: it resolves a catalog entry to its path inside the evidence,
streams the content to a destination file and hashes it on the way.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .catalog import FileCatalog
from .evidence_fs import EvidenceFS
from .logging import get_logger

LOGGER = get_logger("core.file_manager")

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class CopyResult:
    """
    Result of copying one catalog entry.

    Attributes:
        success: True if the destination holds the full entry content
        destination: Path written (or attempted)
        bytes_written: Number of bytes written
        sha256: SHA256 of the written content (None if failed)
        error_message: Error message if failed (None if succeeded)
    """
    success: bool
    destination: Path
    bytes_written: int = 0
    sha256: Optional[str] = None
    error_message: Optional[str] = None


class EvidenceFileManager:
    """Byte-copy primitive backed by a file catalog and an evidence source."""

    def __init__(
        self,
        catalog: FileCatalog,
        evidence_fs: EvidenceFS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.catalog = catalog
        self.evidence_fs = evidence_fs
        self.chunk_size = chunk_size

    def copy_file(self, entry_id: int, destination: Path) -> CopyResult:
        """
        Stream an entry's content to ``destination``.

        The destination's parent directory must exist. An existing file at
        the destination is overwritten. A partially written file is removed
        when the copy fails.

        Args:
            entry_id: Catalog ID of the entry to copy
            destination: Local file path to create

        Returns:
            CopyResult describing the outcome
        """
        entry = self.catalog.resolve(entry_id)
        if entry is None:
            return CopyResult(False, destination, error_message=f"Unknown catalog entry {entry_id}")
        if entry.is_directory:
            return CopyResult(False, destination, error_message=f"Entry {entry_id} is a directory")
        if not entry.file_path:
            return CopyResult(False, destination, error_message=f"Entry {entry_id} has no evidence path")

        hasher = hashlib.sha256()
        bytes_written = 0
        try:
            with destination.open("wb") as handle:
                for chunk in self.evidence_fs.open_for_stream(entry.file_path, self.chunk_size):
                    handle.write(chunk)
                    hasher.update(chunk)
                    bytes_written += len(chunk)
        except (OSError, ValueError) as exc:
            _remove_partial(destination)
            LOGGER.debug("Copy of entry %d to %s failed: %s", entry_id, destination, exc)
            return CopyResult(False, destination, bytes_written, error_message=str(exc))

        return CopyResult(True, destination, bytes_written, sha256=hasher.hexdigest())


def create_directories(path: Path) -> Tuple[bool, str]:
    """
    Create ``path`` and any missing ancestors.

    Succeeds when the directory already exists.

    Returns:
        Tuple of (created_or_present, reason_if_not)
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError:
        return False, f"{path} exists and is not a directory"
    except OSError as exc:
        return False, str(exc)
    if not path.is_dir():
        return False, f"{path} exists and is not a directory"
    return True, ""


def _remove_partial(destination: Path) -> None:
    try:
        destination.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOGGER.warning("Could not remove partial file %s: %s", destination, exc)
