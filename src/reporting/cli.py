"""
Command line entry point.

    hitsaver index    --evidence-db case.sqlite --source /mnt/image
    hitsaver tag      --evidence-db case.sqlite --pattern '*.exe' --tag Executables
    hitsaver export   --evidence-db case.sqlite --source /mnt/image --output ./interesting
    hitsaver pipeline --evidence-db case.sqlite --source image.E01 --manifest pipeline.yml
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.app_version import get_app_version
from core.config import AppConfig, load_app_config
from core.database import init_db
from core.enums import ModuleStatus
from core.evidence_fs import open_evidence_source
from core.indexer import index_evidence_tree, tag_matching_entries
from core.logging import configure_logging, get_logger
from core.manifest import ManifestValidationError

from .base import ReportContext
from .exceptions import ReportModuleError
from .pipeline import ReportPipeline, load_pipeline_manifest
from .save_interesting import SaveInterestingFilesModule

LOGGER = get_logger("reporting.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hitsaver",
        description="Export interesting files from an evidence catalog into a directory tree.",
    )
    parser.add_argument("-V", "--version", action="version", version=f"hitsaver {get_app_version()}")
    parser.add_argument(
        "--config-dir", type=Path, default=None,
        help="Base directory holding config/config.yml and logs/ (default: current directory)",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None,
        help="Override the configured log level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def _evidence_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--evidence-db", type=Path, required=True, help="Evidence catalog database")
        sub.add_argument("--evidence-id", type=int, default=1, help="Evidence ID inside the database")

    def _source_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--source", type=Path, required=True,
                         help="Mounted evidence directory or first EWF segment (.E01)")
        sub.add_argument("--partition", type=int, default=-1,
                         help="Partition for EWF images (-1 auto, 0 direct filesystem)")

    index_cmd = subparsers.add_parser("index", help="Build the file catalog from an evidence source")
    _evidence_args(index_cmd)
    _source_args(index_cmd)
    index_cmd.add_argument("--keep-existing", action="store_true",
                           help="Do not delete catalog rows from an earlier index run")
    index_cmd.set_defaults(handler=_cmd_index)

    tag_cmd = subparsers.add_parser("tag", help="Flag catalog entries matching a wildcard pattern")
    _evidence_args(tag_cmd)
    tag_cmd.add_argument("--pattern", required=True,
                         help="Wildcard matched against names, or full paths when it contains '/'")
    tag_cmd.add_argument("--tag", required=True, help="Set label to apply")
    tag_cmd.set_defaults(handler=_cmd_tag)

    export_cmd = subparsers.add_parser("export", help="Save tagged entries to an output directory")
    _evidence_args(export_cmd)
    _source_args(export_cmd)
    export_cmd.add_argument("--output", default=None, help="Output directory (default: export.output_dir)")
    export_cmd.add_argument("--label", action="append", default=None,
                            help="Only export this set label (repeatable)")
    export_cmd.set_defaults(handler=_cmd_export)

    pipeline_cmd = subparsers.add_parser("pipeline", help="Run a reporting pipeline manifest")
    _evidence_args(pipeline_cmd)
    _source_args(pipeline_cmd)
    pipeline_cmd.add_argument("--manifest", type=Path, required=True, help="Pipeline manifest (YAML)")
    pipeline_cmd.set_defaults(handler=_cmd_pipeline)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    base_dir = (args.config_dir or Path.cwd()).resolve()
    try:
        app_config = load_app_config(base_dir)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    level_name = args.log_level or app_config.logging.level
    configure_logging(
        app_config.logs_dir,
        level=getattr(logging, level_name, logging.INFO),
        max_bytes=app_config.logging.app_log_max_mb * 1024 * 1024,
        backup_count=app_config.logging.app_log_backup_count,
    )
    LOGGER.debug("Resolved configuration:\n%s", app_config.to_json())
    return args.handler(args, app_config)


def _cmd_index(args: argparse.Namespace, app_config: AppConfig) -> int:
    conn = init_db(args.evidence_db)
    try:
        with open_evidence_source(args.source, args.partition) as evidence_fs:
            result = index_evidence_tree(
                conn, args.evidence_id, evidence_fs, replace=not args.keep_existing,
            )
    except (OSError, ValueError, RuntimeError) as exc:
        LOGGER.error("Cannot index %s: %s", args.source, exc)
        return 1
    finally:
        conn.close()

    if not result.success:
        print(f"Indexing failed: {result.error_message}", file=sys.stderr)
        return 1
    print(f"Indexed {result.total_entries} entries ({result.directories} directories) "
          f"in {result.duration_seconds:.2f}s")
    return 0


def _cmd_tag(args: argparse.Namespace, app_config: AppConfig) -> int:
    conn = init_db(args.evidence_db)
    try:
        tagged = tag_matching_entries(conn, args.evidence_id, args.pattern, args.tag)
    finally:
        conn.close()
    print(f"Tagged {tagged} entries as {args.tag!r}")
    return 0


def _cmd_export(args: argparse.Namespace, app_config: AppConfig) -> int:
    output = args.output if args.output is not None else app_config.export.output_dir
    set_labels = args.label or app_config.export.set_labels or None

    conn = init_db(args.evidence_db)
    try:
        with open_evidence_source(args.source, args.partition) as evidence_fs:
            context = ReportContext(
                evidence_conn=conn,
                evidence_id=args.evidence_id,
                evidence_fs=evidence_fs,
                chunk_size=app_config.export.chunk_size,
            )
            module = SaveInterestingFilesModule(context, set_labels=set_labels)
            module.configure(output)
            status = module.run()
            module.teardown()
    except (OSError, ValueError, RuntimeError) as exc:
        LOGGER.error("Cannot open evidence source %s: %s", args.source, exc)
        return 1
    finally:
        conn.close()

    summary = module.last_summary
    print(f"{summary.exports_succeeded}/{summary.exports_attempted} export(s) succeeded, "
          f"{summary.files_written} file(s) written to {summary.output_root or '<unset>'}")
    for failure in summary.failures:
        print(f"  {failure.kind}: entry {failure.entry_id} ({failure.name or '?'}) "
              f"[{failure.set_label or '-'}]: {failure.message}", file=sys.stderr)
    return 0 if status is ModuleStatus.OK else 1


def _cmd_pipeline(args: argparse.Namespace, app_config: AppConfig) -> int:
    try:
        stages = load_pipeline_manifest(args.manifest)
    except (FileNotFoundError, ManifestValidationError) as exc:
        LOGGER.error("Cannot load pipeline manifest %s: %s", args.manifest, exc)
        return 1

    conn = init_db(args.evidence_db)
    try:
        with open_evidence_source(args.source, args.partition) as evidence_fs:
            context = ReportContext(
                evidence_conn=conn,
                evidence_id=args.evidence_id,
                evidence_fs=evidence_fs,
                chunk_size=app_config.export.chunk_size,
            )
            result = ReportPipeline(context, stages).run()
    except ReportModuleError as exc:
        LOGGER.error("Invalid pipeline: %s", exc)
        return 1
    except (OSError, ValueError, RuntimeError) as exc:
        LOGGER.error("Cannot open evidence source %s: %s", args.source, exc)
        return 1
    finally:
        conn.close()

    for name, status in result.module_statuses:
        print(f"{name}: {status}")
    return 0 if result.status is ModuleStatus.OK else 1
