"""Tests for the reporting pipeline and its manifest loader."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from core.enums import ModuleStatus
from core.evidence_fs import MountedFS
from core.manifest import ManifestValidationError
from reporting import (
    BaseReportModule,
    ModuleMetadata,
    ModuleRegistry,
    PipelineStage,
    ReportContext,
    ReportPipeline,
    UnknownModuleError,
    load_pipeline_manifest,
)


class _Recorder:
    def __init__(self) -> None:
        self.events: List[str] = []


def _make_module(name: str, recorder: _Recorder, *, configure=ModuleStatus.OK, run=ModuleStatus.OK,
                 teardown=ModuleStatus.OK, raise_in: Optional[str] = None):
    class _Module(BaseReportModule):
        @classmethod
        def identify(cls) -> ModuleMetadata:
            return ModuleMetadata(name=name, display_name=name.title(), description="test module")

        def configure(self, args):
            recorder.events.append(f"{name}.configure({args})")
            if raise_in == "configure":
                raise RuntimeError("configure exploded")
            return configure

        def run(self):
            recorder.events.append(f"{name}.run")
            if raise_in == "run":
                raise RuntimeError("run exploded")
            return run

        def teardown(self):
            recorder.events.append(f"{name}.teardown")
            return teardown

    return _Module


@pytest.fixture
def report_context(evidence_conn, source_root):
    return ReportContext(evidence_conn=evidence_conn, evidence_id=1, evidence_fs=MountedFS(source_root))


@pytest.fixture
def recorder():
    return _Recorder()


def _registry(*module_classes) -> ModuleRegistry:
    registry = ModuleRegistry(register_builtin=False)
    for module_cls in module_classes:
        registry.register(module_cls)
    return registry


def test_modules_configured_then_run_then_torn_down(report_context, recorder):
    registry = _registry(_make_module("first", recorder), _make_module("second", recorder))
    stages = [PipelineStage("first", "a"), PipelineStage("second", "b")]

    result = ReportPipeline(report_context, stages, registry).run()

    assert result.status is ModuleStatus.OK
    assert result.module_statuses == [("first", ModuleStatus.OK), ("second", ModuleStatus.OK)]
    assert recorder.events == [
        "first.configure(a)", "second.configure(b)",
        "first.run", "second.run",
        "first.teardown", "second.teardown",
    ]


def test_failed_run_does_not_stop_later_modules(report_context, recorder):
    registry = _registry(
        _make_module("first", recorder, run=ModuleStatus.FAIL),
        _make_module("second", recorder),
    )
    result = ReportPipeline(report_context, [PipelineStage("first"), PipelineStage("second")], registry).run()

    assert result.status is ModuleStatus.FAIL
    assert result.module_statuses == [("first", ModuleStatus.FAIL), ("second", ModuleStatus.OK)]


def test_stop_skips_remaining_modules(report_context, recorder):
    registry = _registry(
        _make_module("first", recorder, run=ModuleStatus.STOP),
        _make_module("second", recorder),
    )
    result = ReportPipeline(report_context, [PipelineStage("first"), PipelineStage("second")], registry).run()

    assert result.status is ModuleStatus.OK
    assert result.stopped_early
    assert "second.run" not in recorder.events
    assert "second.teardown" in recorder.events


def test_configure_failure_prevents_run(report_context, recorder):
    registry = _registry(
        _make_module("first", recorder),
        _make_module("second", recorder, configure=ModuleStatus.FAIL),
        _make_module("third", recorder),
    )
    stages = [PipelineStage("first"), PipelineStage("second"), PipelineStage("third")]
    result = ReportPipeline(report_context, stages, registry).run()

    assert result.status is ModuleStatus.FAIL
    assert result.module_statuses == []
    assert not any(event.endswith(".run") for event in recorder.events)
    assert "third.configure()" not in recorder.events
    assert recorder.events[-2:] == ["first.teardown", "second.teardown"]


def test_exceptions_become_failures(report_context, recorder):
    registry = _registry(
        _make_module("first", recorder, raise_in="run"),
        _make_module("second", recorder),
    )
    result = ReportPipeline(report_context, [PipelineStage("first"), PipelineStage("second")], registry).run()

    assert result.status is ModuleStatus.FAIL
    assert result.module_statuses == [("first", ModuleStatus.FAIL), ("second", ModuleStatus.OK)]


def test_teardown_failure_fails_pipeline(report_context, recorder):
    registry = _registry(_make_module("first", recorder, teardown=ModuleStatus.FAIL))
    result = ReportPipeline(report_context, [PipelineStage("first")], registry).run()

    assert result.status is ModuleStatus.FAIL
    assert result.module_statuses == [("first", ModuleStatus.OK)]


def test_unknown_module_rejected_up_front(report_context):
    with pytest.raises(UnknownModuleError):
        ReportPipeline(report_context, [PipelineStage("no_such_module")])


def test_bad_options_fail_pipeline(report_context):
    stages = [PipelineStage("save_interesting_files", "/tmp/out", {"colour": "red"})]
    result = ReportPipeline(report_context, stages).run()
    assert result.status is ModuleStatus.FAIL


def test_save_interesting_files_through_pipeline(report_context, catalog_builder, output_dir):
    catalog_builder.add_dir(42, "bomb")
    catalog_builder.add_file(43, "readme.txt", b"tick", parent_id=42)
    catalog_builder.tag(42, "SuspiciousDirs")
    stages = [PipelineStage("save_interesting_files", f'"{output_dir}"', {"set_labels": ["SuspiciousDirs"]})]

    result = ReportPipeline(report_context, stages).run()

    assert result.status is ModuleStatus.OK
    assert (output_dir / "SuspiciousDirs" / "42_bomb" / "bomb" / "readme.txt").read_bytes() == b"tick"


def test_load_pipeline_manifest(tmp_path: Path):
    manifest = tmp_path / "pipeline.yml"
    manifest.write_text(
        "modules:\n"
        "  - name: save_interesting_files\n"
        "    args: '\"/cases/out\"'\n"
        "    options:\n"
        "      set_labels: [Malware]\n"
        "  - name: save_interesting_files\n",
        encoding="utf-8",
    )

    stages = load_pipeline_manifest(manifest)
    assert stages == [
        PipelineStage("save_interesting_files", '"/cases/out"', {"set_labels": ["Malware"]}),
        PipelineStage("save_interesting_files", "", {}),
    ]


@pytest.mark.parametrize(
    "content",
    [
        "modules: []\n",
        "modules:\n  - args: x\n",
        "modules:\n  - name: Save-Files\n",
        "modules:\n  - name: save_interesting_files\n    extra: 1\n",
        "steps: []\n",
    ],
)
def test_invalid_pipeline_manifest(tmp_path: Path, content: str):
    manifest = tmp_path / "pipeline.yml"
    manifest.write_text(content, encoding="utf-8")

    with pytest.raises(ManifestValidationError):
        load_pipeline_manifest(manifest)
