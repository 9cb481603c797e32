from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    app_log_max_mb: int = 50
    app_log_backup_count: int = 10


@dataclass(slots=True)
class ExportConfig:
    """Interesting-file export configuration from config.yml."""

    output_dir: Optional[str] = None  # Used when the command line gives no --output
    set_labels: List[str] = field(default_factory=list)  # Empty = every tagged set
    chunk_size: int = 64 * 1024


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    logs_dir: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def to_json(self) -> str:
        """Serialize the configuration into a JSON string for log output."""
        data = {
            "logs_dir": str(self.logs_dir),
            "logging": {"level": self.logging.level},
            "export": {
                "output_dir": self.export.output_dir,
                "set_labels": list(self.export.set_labels),
                "chunk_size": self.export.chunk_size,
            },
        }
        return json.dumps(data, indent=2, sort_keys=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")
        return content


def load_app_config(base_dir: Path) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults."""

    config_dir = base_dir / "config"
    config_yaml = config_dir / "config.yml"
    config_overrides = _load_yaml(config_yaml)

    logs_dir = base_dir / "logs"

    logging_cfg = config_overrides.get("logging", {}) or {}
    logging_config = LoggingConfig(
        level=str(logging_cfg.get("level", "INFO")).upper(),
        app_log_max_mb=int(logging_cfg.get("app_log_max_mb", 50)),
        app_log_backup_count=int(logging_cfg.get("app_log_backup_count", 10)),
    )

    export_cfg = config_overrides.get("export", {}) or {}
    set_labels = export_cfg.get("set_labels") or []
    if not isinstance(set_labels, list):
        raise ValueError(f"export.set_labels in {config_yaml} must be a list.")
    export_config = ExportConfig(
        output_dir=export_cfg.get("output_dir"),
        set_labels=[str(label) for label in set_labels],
        chunk_size=int(export_cfg.get("chunk_size", 64 * 1024)),
    )

    return AppConfig(
        base_dir=base_dir,
        logs_dir=logs_dir,
        logging=logging_config,
        export=export_config,
    )
