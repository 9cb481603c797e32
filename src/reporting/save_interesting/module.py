"""
Save Interesting Files report module.

Copies every tagged ("interesting") catalog entry into an output directory,
one subdirectory per tag. The module argument is the output directory.
"""
from __future__ import annotations

from typing import Iterable, Optional

from core.catalog import FileCatalog, TaggedHitSource
from core.enums import ModuleStatus
from core.file_manager import EvidenceFileManager

from ..base import BaseReportModule, ModuleMetadata, ReportContext
from .exporter import ExportSummary, TreeExporter


class SaveInterestingFilesModule(BaseReportModule):
    """Report module wrapping TreeExporter with catalog-backed collaborators."""

    NAME = "save_interesting_files"

    def __init__(
        self,
        context: ReportContext,
        set_labels: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(context)
        catalog = FileCatalog(context.evidence_conn, context.evidence_id)
        self.exporter = TreeExporter(
            catalog=catalog,
            hit_source=TaggedHitSource(context.evidence_conn, context.evidence_id, set_labels),
            copier=EvidenceFileManager(catalog, context.evidence_fs, context.chunk_size),
            callbacks=context.callbacks,
        )

    @classmethod
    def identify(cls) -> ModuleMetadata:
        return ModuleMetadata(
            name=cls.NAME,
            display_name="Save Interesting Files",
            description=(
                "Saves files and directories flagged as interesting to an output "
                "directory, grouped by set label."
            ),
        )

    def configure(self, args: Optional[str]) -> ModuleStatus:
        return self.exporter.configure(args)

    def run(self) -> ModuleStatus:
        return self.exporter.run()

    @property
    def last_summary(self) -> ExportSummary:
        return self.exporter.last_summary
