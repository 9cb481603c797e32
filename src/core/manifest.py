"""YAML/JSON manifest helpers (schema loading + validation)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml
from jsonschema import Draft202012Validator

from .logging import get_logger

LOGGER = get_logger("core.manifest")


@dataclass(frozen=True)
class ManifestValidationError(Exception):
    """Raised when manifest validation fails."""

    errors: List[str]

    def __str__(self) -> str:
        return " | ".join(self.errors)


def load_schema(schema_path: Path) -> Draft202012Validator:
    """Load a JSON schema file and return a compiled validator."""
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def iter_validation_errors(validator: Draft202012Validator, document: Any) -> Iterable[str]:
    """Yield human-readable error strings for a document."""
    for error in validator.iter_errors(document):
        path = "/".join(str(p) for p in error.path)
        pointer = f"{path}: " if path else ""
        yield f"{pointer}{error.message}"


def load_yaml_manifest(manifest_path: Path, schema_path: Path) -> Dict[str, Any]:
    """
    Read a YAML manifest and validate it against a JSON schema.

    Raises:
        FileNotFoundError: If the manifest or schema does not exist
        ManifestValidationError: If the document is not valid YAML or breaks the schema
    """
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")
    if not manifest_path.exists():
        raise FileNotFoundError(f"Manifest not found: {manifest_path}")

    try:
        document = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ManifestValidationError([f"{manifest_path}: invalid YAML: {exc}"]) from exc

    validator = load_schema(schema_path)
    errors = list(iter_validation_errors(validator, document))
    if errors:
        LOGGER.error("Manifest validation failed for %s: %s", manifest_path, " | ".join(errors))
        raise ManifestValidationError(errors)
    return document
