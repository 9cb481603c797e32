"""
Reporting modules for the evidence catalog.

Each report module implements identify/configure/run/teardown and is run
by ReportPipeline from a YAML manifest.

Folder Structure:
- save_interesting/  Export tagged entries as a directory tree per set label
- schemas/           JSON schemas for pipeline manifests
"""

from .base import BaseReportModule, ModuleMetadata, ReportContext  # noqa: F401
from .callbacks import ReportCallbacks  # noqa: F401
from .exceptions import ConfigurationError, ReportModuleError, UnknownModuleError  # noqa: F401
from .pipeline import PipelineResult, PipelineStage, ReportPipeline, load_pipeline_manifest  # noqa: F401
from .registry import ModuleRegistry  # noqa: F401
