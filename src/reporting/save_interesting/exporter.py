"""
Selective tree export of interesting catalog entries.

TreeExporter copies every hit reported by a hit source into
``<output_root>/<set_label>/``. Regular files become a single file;
directories are rebuilt from the catalog's parent/child relation (never
from a listing of the evidence) below an identifier-prefixed folder.

Failures are contained to one (hit, set label) pair: they are logged,
recorded in the run summary and turn the run status to FAIL, and the
export moves on. Only an unusable output root stops a run before any hit.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from core.catalog import CatalogEntry, Hit
from core.enums import ExportErrorKind, ModuleStatus, RunState
from core.file_manager import CopyResult, create_directories
from core.logging import get_logger

from ..callbacks import ReportCallbacks
from .paths import child_destination, directory_destination, file_destination, set_label_root

LOGGER = get_logger("reporting.save_interesting.exporter")

LOG_PREFIX = "SaveInterestingFiles:"


class CatalogLookup(Protocol):
    def resolve(self, entry_id: int) -> Optional[CatalogEntry]:
        ...

    def query_children(self, parent_id: int) -> Sequence[CatalogEntry]:
        ...


class HitSource(Protocol):
    def list_hits(self) -> Sequence[Hit]:
        ...


class ContentCopier(Protocol):
    def copy_file(self, entry_id: int, destination: Path) -> CopyResult:
        ...


DirectoryCreator = Callable[[Path], Tuple[bool, str]]


@dataclass
class ExportFailure:
    """
    One failed unit of work.

    Attributes:
        kind: Failure class
        message: What went wrong
        entry_id: Entry that failed (a descendant for nested failures)
        name: Name of that entry
        set_label: Set label being exported
        hit_entry_id: Entry of the hit whose export failed
    """
    kind: ExportErrorKind
    message: str
    entry_id: Optional[int] = None
    name: Optional[str] = None
    set_label: Optional[str] = None
    hit_entry_id: Optional[int] = None


@dataclass
class ExportSummary:
    """
    Counters and failures of one export run.

    ``directories_created`` counts only directories this run made; ones left
    by an earlier run or created for the output root itself are not counted.
    """

    status: ModuleStatus = ModuleStatus.OK
    output_root: str = ""
    hits_total: int = 0
    exports_attempted: int = 0
    exports_succeeded: int = 0
    files_written: int = 0
    bytes_written: int = 0
    directories_created: int = 0
    failures: List[ExportFailure] = field(default_factory=list)


def strip_output_argument(arg: Optional[str]) -> str:
    """
    Normalize the output directory argument.

    Surrounding whitespace is dropped, then one leading and one trailing
    double quote (arguments quoted in XML or YAML pipeline files).
    """
    value = (arg or "").strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


class TreeExporter:
    """
    Export hits as a directory tree grouped by set label.

    An instance keeps its output root across runs until reconfigured;
    each run starts with a fresh OK status and summary.

    Example:
        exporter = TreeExporter(FileCatalog(conn, 1), TaggedHitSource(conn, 1), copier)
        exporter.configure('"/cases/out"')
        status = exporter.run()
    """

    def __init__(
        self,
        catalog: CatalogLookup,
        hit_source: HitSource,
        copier: ContentCopier,
        *,
        make_directories: DirectoryCreator = create_directories,
        callbacks: Optional[ReportCallbacks] = None,
    ) -> None:
        self._catalog = catalog
        self._hit_source = hit_source
        self._copier = copier
        self._make_directories = make_directories
        self._callbacks = callbacks
        self._output_root = ""
        self._state = RunState.UNCONFIGURED
        self._summary = ExportSummary()

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def output_root(self) -> str:
        return self._output_root

    @property
    def last_summary(self) -> ExportSummary:
        return self._summary

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def configure(self, output_path_arg: Optional[str]) -> ModuleStatus:
        """
        Store the output root for later runs.

        Never creates the directory and never fails: a missing argument is
        logged here and surfaces as a failed run().
        """
        self._output_root = strip_output_argument(output_path_arg)
        if not self._output_root:
            LOGGER.error("%s Missing output directory argument.", LOG_PREFIX)
        else:
            LOGGER.info("%s Initialized with argument: %s", LOG_PREFIX, self._output_root)
        self._state = RunState.CONFIGURED
        return ModuleStatus.OK

    def run(self) -> ModuleStatus:
        """
        Export every hit of the hit source.

        Returns:
            ModuleStatus.OK if every hit was exported, otherwise ModuleStatus.FAIL
        """
        if self._state is RunState.RUNNING:
            LOGGER.error("%s run() called while an export is already running.", LOG_PREFIX)
            return ModuleStatus.FAIL

        self._state = RunState.RUNNING
        self._summary = ExportSummary(output_root=self._output_root)
        try:
            self._export_all()
        except Exception as exc:
            LOGGER.exception("%s Unexpected error during export", LOG_PREFIX)
            self._fail(ExportErrorKind.INTERNAL, f"Unexpected error: {exc}")

        summary = self._summary
        self._state = RunState.SUCCEEDED if summary.status is ModuleStatus.OK else RunState.FAILED
        LOGGER.info(
            "%s Finished: %d/%d export(s) succeeded, %d file(s), %d byte(s), %d failure(s).",
            LOG_PREFIX, summary.exports_succeeded, summary.exports_attempted,
            summary.files_written, summary.bytes_written, len(summary.failures),
        )
        return summary.status

    # ------------------------------------------------------------------
    # Per-hit export
    # ------------------------------------------------------------------

    def export_file(self, entry: CatalogEntry, set_label: str) -> bool:
        """Copy a regular-file entry to ``<root>/<label>/<id>_<name>``."""
        root = Path(self._output_root)
        if not self._ensure_directory(set_label_root(root, set_label), entry, set_label, entry.id):
            return False
        return self._copy_entry(entry, file_destination(root, set_label, entry), set_label, entry.id)

    def export_directory(self, entry: CatalogEntry, set_label: str) -> bool:
        """
        Rebuild a directory entry below ``<root>/<label>/<id>_<name>/<name>``.

        Descendants are fetched from the catalog one directory at a time and
        written depth-first in catalog order. The first failure stops this
        subtree; whatever was already written stays.
        """
        content_dir = directory_destination(Path(self._output_root), set_label, entry)
        if not self._ensure_directory(content_dir, entry, set_label, entry.id):
            return False

        children = self._children_of(entry, set_label, entry.id)
        if children is None:
            return False

        visited = {entry.id}
        # Reversed pushes make pops follow catalog order
        stack = [(child, content_dir) for child in reversed(children)]
        while stack:
            current, parent_dir = stack.pop()
            destination = child_destination(parent_dir, current)

            if not current.is_directory:
                if not self._copy_entry(current, destination, set_label, entry.id):
                    return False
                continue

            if current.id in visited:
                LOGGER.warning(
                    "%s Directory %d (%s) appears twice below entry %d; not descending again.",
                    LOG_PREFIX, current.id, current.name, entry.id,
                )
                continue
            visited.add(current.id)

            if not self._ensure_directory(destination, current, set_label, entry.id):
                return False
            grandchildren = self._children_of(current, set_label, entry.id)
            if grandchildren is None:
                return False
            stack.extend((child, destination) for child in reversed(grandchildren))

        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _export_all(self) -> None:
        if not self._prepare_output_root():
            return

        try:
            hits = list(self._hit_source.list_hits())
        except Exception as exc:
            LOGGER.exception("%s Failed to fetch the hit list", LOG_PREFIX)
            self._fail(ExportErrorKind.CONFIGURATION, f"Hit list unavailable: {exc}")
            return

        total = len(hits)
        self._summary.hits_total = total
        LOGGER.info("%s Found %d interesting files.", LOG_PREFIX, total)
        if self._callbacks:
            self._callbacks.on_step(f"Exporting {total} interesting file(s)")

        for index, hit in enumerate(hits):
            if self._callbacks:
                self._callbacks.on_progress(index, total, f"Exporting entry {hit.entry_id}")
            self._export_hit(hit)

        if self._callbacks:
            self._callbacks.on_progress(total, total, "Export complete")

    def _prepare_output_root(self) -> bool:
        if not self._output_root:
            LOGGER.error("%s OutputDir is empty.", LOG_PREFIX)
            self._fail(ExportErrorKind.CONFIGURATION, "Output directory is not configured")
            return False

        root = Path(self._output_root)
        ok, reason = self._make_directories(root)
        if ok and not os.access(root, os.W_OK | os.X_OK):
            ok, reason = False, f"{root} is not writable"
        if not ok:
            LOGGER.error("%s Failed to create directory: %s (%s)", LOG_PREFIX, root, reason)
            self._fail(ExportErrorKind.CONFIGURATION, f"Output directory unusable: {reason}")
            return False
        return True

    def _export_hit(self, hit: Hit) -> None:
        try:
            entry = self._catalog.resolve(hit.entry_id)
        except Exception as exc:
            LOGGER.exception("%s Catalog lookup raised for fileId = %d", LOG_PREFIX, hit.entry_id)
            self._fail(ExportErrorKind.RESOLUTION, f"Catalog lookup failed: {exc}",
                       entry_id=hit.entry_id, hit_entry_id=hit.entry_id)
            return

        if entry is None:
            LOGGER.error("%s getFileRecord failed for fileId = %d", LOG_PREFIX, hit.entry_id)
            self._fail(ExportErrorKind.RESOLUTION, "Entry not found in catalog",
                       entry_id=hit.entry_id, hit_entry_id=hit.entry_id)
            return

        if not hit.set_labels:
            LOGGER.warning("%s Entry %d (%s) carries no set label; nothing to export.",
                           LOG_PREFIX, entry.id, entry.name)
            return

        for set_label in hit.set_labels:
            self._summary.exports_attempted += 1
            try:
                if entry.is_directory:
                    exported = self.export_directory(entry, set_label)
                else:
                    exported = self.export_file(entry, set_label)
            except Exception as exc:
                LOGGER.exception("%s exception while exporting entry %d (%s) under %s",
                                 LOG_PREFIX, entry.id, entry.name, set_label)
                self._fail(ExportErrorKind.INTERNAL, str(exc), entry=entry,
                           set_label=set_label, hit_entry_id=entry.id)
                continue
            if exported:
                self._summary.exports_succeeded += 1

    def _children_of(
        self,
        entry: CatalogEntry,
        set_label: str,
        hit_entry_id: int,
    ) -> Optional[List[CatalogEntry]]:
        try:
            return list(self._catalog.query_children(entry.id))
        except Exception as exc:
            LOGGER.exception("%s Listing children of entry %d (%s) failed",
                             LOG_PREFIX, entry.id, entry.name)
            self._fail(ExportErrorKind.ENUMERATION, f"Child lookup failed: {exc}",
                       entry=entry, set_label=set_label, hit_entry_id=hit_entry_id)
            return None

    def _ensure_directory(
        self,
        path: Path,
        entry: CatalogEntry,
        set_label: str,
        hit_entry_id: int,
    ) -> bool:
        missing = _missing_levels(path)
        ok, reason = self._make_directories(path)
        if not ok:
            LOGGER.error("%s Failed to create directory %s for entry %d (%s): %s",
                         LOG_PREFIX, path, entry.id, entry.name, reason)
            self._fail(ExportErrorKind.DIRECTORY_CREATION, reason or f"Cannot create {path}",
                       entry=entry, set_label=set_label, hit_entry_id=hit_entry_id)
            return False
        self._summary.directories_created += missing
        return True

    def _copy_entry(
        self,
        entry: CatalogEntry,
        destination: Path,
        set_label: str,
        hit_entry_id: int,
    ) -> bool:
        result = self._copier.copy_file(entry.id, destination)
        if not result.success:
            LOGGER.error("%s Failed to save entry %d (%s) to %s: %s",
                         LOG_PREFIX, entry.id, entry.name, destination, result.error_message)
            self._fail(ExportErrorKind.COPY, result.error_message or "Copy failed",
                       entry=entry, set_label=set_label, hit_entry_id=hit_entry_id)
            return False
        self._summary.files_written += 1
        self._summary.bytes_written += result.bytes_written
        LOGGER.info("%s saved file: %s", LOG_PREFIX, destination)
        return True

    def _fail(
        self,
        kind: ExportErrorKind,
        message: str,
        *,
        entry: Optional[CatalogEntry] = None,
        entry_id: Optional[int] = None,
        set_label: Optional[str] = None,
        hit_entry_id: Optional[int] = None,
    ) -> None:
        self._summary.status = ModuleStatus.FAIL
        self._summary.failures.append(ExportFailure(
            kind=kind,
            message=message,
            entry_id=entry.id if entry is not None else entry_id,
            name=entry.name if entry is not None else None,
            set_label=set_label,
            hit_entry_id=hit_entry_id,
        ))


def _missing_levels(path: Path) -> int:
    """Number of directories ``path`` and its ancestors still lack."""
    count = 0
    for candidate in (path, *path.parents):
        if candidate.exists():
            break
        count += 1
    return count
