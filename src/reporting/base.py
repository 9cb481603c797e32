"""
Base report module interface for the reporting pipeline.
"""

import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from core.app_version import get_app_version
from core.enums import ModuleStatus
from core.evidence_fs import EvidenceFS

from .callbacks import ReportCallbacks


@dataclass
class ModuleMetadata:
    """
    Metadata about a report module.

    Attributes:
        name: Internal identifier used in pipeline manifests (e.g., "save_interesting_files")
        display_name: Human-readable name
        description: Short description
        version: Module version string
    """
    name: str
    display_name: str
    description: str
    version: str = field(default_factory=get_app_version)


@dataclass
class ReportContext:
    """
    Collaborators handed to report modules when they are created.

    Attributes:
        evidence_conn: SQLite connection to the evidence database
        evidence_id: Evidence ID of the catalog rows to report on
        evidence_fs: Evidence source for reading entry content
        callbacks: Optional progress callbacks
        chunk_size: Copy buffer size for modules that stream content
    """
    evidence_conn: sqlite3.Connection
    evidence_id: int
    evidence_fs: EvidenceFS
    callbacks: Optional[ReportCallbacks] = None
    chunk_size: int = 64 * 1024


class BaseReportModule(ABC):
    """
    Base class for all report modules.

    Lifecycle:
        1. Pipeline creates the module with a ReportContext
        2. configure(args) with the module's argument string
        3. run() once per report
        4. teardown() when the pipeline finishes

    configure() and run() return ModuleStatus.OK, FAIL or STOP. STOP asks
    the pipeline to skip the remaining modules.
    """

    def __init__(self, context: ReportContext) -> None:
        self.context = context

    @classmethod
    @abstractmethod
    def identify(cls) -> ModuleMetadata:
        """Return static module metadata."""

    @abstractmethod
    def configure(self, args: Optional[str]) -> ModuleStatus:
        """Apply the module's argument string."""

    @abstractmethod
    def run(self) -> ModuleStatus:
        """Produce the module's report output."""

    def teardown(self) -> ModuleStatus:
        """Release anything held since configure(). Default: nothing to release."""
        return ModuleStatus.OK
