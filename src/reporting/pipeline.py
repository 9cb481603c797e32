"""
Reporting pipeline - run report modules in manifest order.

A manifest lists the modules and their argument strings:

    modules:
      - name: save_interesting_files
        args: '"/cases/CASE-001/interesting"'
        options:
          set_labels: [Malware]

Every module is configured before any runs. A module that fails to
configure keeps the whole pipeline from running. During the run phase a
FAIL is recorded and the next module still runs; STOP ends the run phase.
All created modules are torn down at the end.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.enums import ModuleStatus
from core.logging import get_logger
from core.manifest import load_yaml_manifest

from .base import BaseReportModule, ReportContext
from .exceptions import UnknownModuleError
from .registry import ModuleRegistry

LOGGER = get_logger("reporting.pipeline")

PIPELINE_SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "pipeline_manifest.schema.json"


@dataclass
class PipelineStage:
    """One module entry of a pipeline manifest."""

    name: str
    args: str = ""
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineResult:
    """
    Result of a pipeline run.

    Attributes:
        status: FAIL if any module failed to configure, run or tear down
        module_statuses: (module name, run status) in execution order
        stopped_early: True if a module returned STOP
    """
    status: ModuleStatus = ModuleStatus.OK
    module_statuses: List[Tuple[str, ModuleStatus]] = field(default_factory=list)
    stopped_early: bool = False


def load_pipeline_manifest(
    manifest_path: Path,
    schema_path: Optional[Path] = None,
) -> List[PipelineStage]:
    """
    Load and validate a pipeline manifest.

    Raises:
        FileNotFoundError: If the manifest does not exist
        ManifestValidationError: If it does not match the manifest schema
    """
    document = load_yaml_manifest(manifest_path, schema_path or PIPELINE_SCHEMA_PATH)
    return [
        PipelineStage(
            name=item["name"],
            args=item.get("args", ""),
            options=dict(item.get("options") or {}),
        )
        for item in document["modules"]
    ]


class ReportPipeline:
    """Configure, run and tear down a sequence of report modules."""

    def __init__(
        self,
        context: ReportContext,
        stages: Sequence[PipelineStage],
        registry: Optional[ModuleRegistry] = None,
    ) -> None:
        """
        Raises:
            UnknownModuleError: If a stage names an unregistered module
        """
        self.context = context
        self.stages = list(stages)
        self.registry = registry or ModuleRegistry()
        for stage in self.stages:
            if self.registry.get(stage.name) is None:
                raise UnknownModuleError(stage.name, self.registry.names())

    def run(self) -> PipelineResult:
        result = PipelineResult()
        modules: List[Tuple[PipelineStage, BaseReportModule]] = []

        try:
            for stage in self.stages:
                try:
                    module = self.registry.create(stage.name, self.context, **stage.options)
                except Exception:
                    LOGGER.exception("Could not create module %s", stage.name)
                    result.status = ModuleStatus.FAIL
                    return result
                modules.append((stage, module))
                if self._call(stage, "configure", partial(module.configure, stage.args)) is ModuleStatus.FAIL:
                    LOGGER.error("Module %s failed to configure; pipeline will not run.", stage.name)
                    result.status = ModuleStatus.FAIL
                    return result

            for stage, module in modules:
                status = self._call(stage, "run", module.run)
                result.module_statuses.append((stage.name, status))
                if status is ModuleStatus.FAIL:
                    result.status = ModuleStatus.FAIL
                elif status is ModuleStatus.STOP:
                    LOGGER.info("Module %s requested pipeline stop.", stage.name)
                    result.stopped_early = True
                    break
            return result
        finally:
            for stage, module in modules:
                if self._call(stage, "teardown", module.teardown) is ModuleStatus.FAIL:
                    result.status = ModuleStatus.FAIL
            LOGGER.info("Pipeline finished with status %s", result.status)

    @staticmethod
    def _call(stage: PipelineStage, phase: str, func: Callable[[], Any]) -> ModuleStatus:
        LOGGER.debug("%s: %s", stage.name, phase)
        try:
            return ModuleStatus(func())
        except Exception:
            LOGGER.exception("Module %s raised during %s", stage.name, phase)
            return ModuleStatus.FAIL
