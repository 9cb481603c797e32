"""
Core Enumerations

Centralized enum definitions for consistent typing across the codebase.
Using StrEnum (Python 3.11+) for string-based enums that serialize naturally.
"""

from enum import StrEnum


class EntryKind(StrEnum):
    """Export-relevant kind of a catalog entry."""

    FILE = "file"
    DIRECTORY = "directory"

    @classmethod
    def from_meta_type(cls, meta_type: str | None) -> "EntryKind":
        """Collapse the catalog's metadata type onto file/directory."""
        if meta_type and meta_type.lower() in DIRECTORY_META_TYPES:
            return cls.DIRECTORY
        return cls.FILE


class ModuleStatus(StrEnum):
    """Status values returned by report module lifecycle calls."""

    OK = "ok"
    FAIL = "fail"
    STOP = "stop"  # Request to end the reporting pipeline early


class RunState(StrEnum):
    """Lifecycle states of a tree export engine."""

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExportErrorKind(StrEnum):
    """Failure classes recorded during an export run."""

    CONFIGURATION = "configuration"  # Run-wide: aborts before any hit
    RESOLUTION = "resolution"
    COPY = "copy"
    DIRECTORY_CREATION = "directory_creation"
    ENUMERATION = "enumeration"
    INTERNAL = "internal"


# Catalog meta_type values (SleuthKit naming) treated as directories
DIRECTORY_META_TYPES: frozenset[str] = frozenset({
    "dir",
    "vdir",  # TSK virtual directory ($OrphanFiles etc.)
})
