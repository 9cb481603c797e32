"""End-to-end tests for the hitsaver command line."""
from __future__ import annotations

import logging
from pathlib import Path

import pytest

from core.logging import ROOT_LOGGER_NAME
from reporting.cli import build_parser, main


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    base = tmp_path / "workspace"
    (base / "config").mkdir(parents=True)
    return base


@pytest.fixture
def image(tmp_path: Path) -> Path:
    root = tmp_path / "image"
    (root / "Users" / "alice" / "Tools").mkdir(parents=True)
    (root / "Users" / "alice" / "Tools" / "nc.exe").write_bytes(b"MZnc")
    (root / "Users" / "alice" / "Tools" / "readme.txt").write_bytes(b"usage")
    (root / "README").write_bytes(b"top-level readme")
    return root


def _cli(workspace: Path, *args: str) -> int:
    return main(["--config-dir", str(workspace), *args])


def test_index_tag_export(workspace, image, tmp_path, capsys):
    db = tmp_path / "case" / "evidence.sqlite"
    out = tmp_path / "out"

    assert _cli(workspace, "index", "--evidence-db", str(db), "--source", str(image)) == 0
    assert "Indexed 6 entries" in capsys.readouterr().out

    assert _cli(workspace, "tag", "--evidence-db", str(db), "--pattern", "tools", "--tag", "SuspiciousDirs") == 0
    assert _cli(workspace, "tag", "--evidence-db", str(db), "--pattern", "README", "--tag", "ReadmeFiles") == 0

    assert _cli(workspace, "export", "--evidence-db", str(db), "--source", str(image),
                "--output", str(out)) == 0

    [readme] = list((out / "ReadmeFiles").iterdir())
    assert readme.name.endswith("_README")
    assert readme.read_bytes() == b"top-level readme"

    [tools] = list((out / "SuspiciousDirs").iterdir())
    assert tools.name.endswith("_Tools")
    assert (tools / "Tools" / "nc.exe").read_bytes() == b"MZnc"
    assert (tools / "Tools" / "readme.txt").read_bytes() == b"usage"

    assert (workspace / "logs" / "processing.log").exists()


def test_export_label_filter(workspace, image, tmp_path):
    db = tmp_path / "evidence.sqlite"
    out = tmp_path / "out"
    _cli(workspace, "index", "--evidence-db", str(db), "--source", str(image))
    _cli(workspace, "tag", "--evidence-db", str(db), "--pattern", "*.exe", "--tag", "Executables")
    _cli(workspace, "tag", "--evidence-db", str(db), "--pattern", "*.txt", "--tag", "Text")

    assert _cli(workspace, "export", "--evidence-db", str(db), "--source", str(image),
                "--output", str(out), "--label", "executables") == 0
    assert [path.name for path in out.iterdir()] == ["Executables"]


def test_export_output_from_config(workspace, image, tmp_path):
    db = tmp_path / "evidence.sqlite"
    out = tmp_path / "configured_out"
    (workspace / "config" / "config.yml").write_text(f'export:\n  output_dir: "{out.as_posix()}"\n',
                                                     encoding="utf-8")
    _cli(workspace, "index", "--evidence-db", str(db), "--source", str(image))
    _cli(workspace, "tag", "--evidence-db", str(db), "--pattern", "README", "--tag", "ReadmeFiles")

    assert _cli(workspace, "export", "--evidence-db", str(db), "--source", str(image)) == 0
    assert (out / "ReadmeFiles").is_dir()


def test_export_without_output_fails(workspace, image, tmp_path, capsys):
    db = tmp_path / "evidence.sqlite"
    _cli(workspace, "index", "--evidence-db", str(db), "--source", str(image))

    assert _cli(workspace, "export", "--evidence-db", str(db), "--source", str(image)) == 1
    assert "configuration" in capsys.readouterr().err


def test_export_missing_source(workspace, tmp_path):
    assert _cli(workspace, "export", "--evidence-db", str(tmp_path / "e.sqlite"),
                "--source", str(tmp_path / "nope"), "--output", str(tmp_path / "out")) == 1


def test_pipeline_command(workspace, image, tmp_path, capsys):
    db = tmp_path / "evidence.sqlite"
    out = tmp_path / "pipeline_out"
    manifest = tmp_path / "pipeline.yml"
    manifest.write_text(
        "modules:\n"
        "  - name: save_interesting_files\n"
        f"    args: '\"{out.as_posix()}\"'\n",
        encoding="utf-8",
    )
    _cli(workspace, "index", "--evidence-db", str(db), "--source", str(image))
    _cli(workspace, "tag", "--evidence-db", str(db), "--pattern", "*.exe", "--tag", "Executables")

    assert _cli(workspace, "pipeline", "--evidence-db", str(db), "--source", str(image),
                "--manifest", str(manifest)) == 0
    assert "save_interesting_files: ok" in capsys.readouterr().out
    assert len(list((out / "Executables").iterdir())) == 1


def test_pipeline_invalid_manifest(workspace, image, tmp_path):
    manifest = tmp_path / "pipeline.yml"
    manifest.write_text("modules:\n  - name: unknown_module\n", encoding="utf-8")

    assert _cli(workspace, "pipeline", "--evidence-db", str(tmp_path / "e.sqlite"), "--source", str(image),
                "--manifest", str(manifest)) == 1


def test_invalid_config_exit_code(workspace, tmp_path):
    (workspace / "config" / "config.yml").write_text("- nope\n", encoding="utf-8")
    assert _cli(workspace, "tag", "--evidence-db", str(tmp_path / "e.sqlite"),
                "--pattern", "*", "--tag", "All") == 2


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
