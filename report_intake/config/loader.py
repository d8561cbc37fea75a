from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import CommitConfig, DatabaseConfig, ExportConfig, IntakeConfig, ReaderConfig

"""Reads config/intake.yml into an IntakeConfig.

The YAML is checked against config_schema.json (shipped beside this module)
before any section is built, so unknown keys and wrong types fail loudly.
Missing sections and keys fall back to the dataclass defaults.
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/intake.yml")


class ConfigError(Exception):
    """Config file missing, unreadable or rejected by the schema."""


def _read_schema() -> dict[str, Any]:
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e


def _check_against_schema(raw: dict[str, Any]) -> None:
    try:
        jsonschema.validate(raw, _read_schema())
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {where}: {e.message}") from e


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml in {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config root must be a mapping, got {type(raw).__name__}")
    return raw


def _reader(section: dict[str, Any]) -> ReaderConfig:
    return ReaderConfig(
        na_strings=tuple(section.get("na_strings", ReaderConfig.na_strings)),
        skip_blank_rows=section.get("skip_blank_rows", ReaderConfig.skip_blank_rows),
    )


def _export(section: dict[str, Any]) -> ExportConfig:
    return ExportConfig(file_stem=section.get("file_stem", ExportConfig.file_stem))


def _commit(section: dict[str, Any]) -> CommitConfig:
    return CommitConfig(
        submission_table=section.get("submission_table", CommitConfig.submission_table),
        document_table=section.get("document_table", CommitConfig.document_table),
    )


def _database(section: dict[str, Any]) -> DatabaseConfig:
    # every key is optional; environment variables win at connect time
    return DatabaseConfig(**{k: section.get(k) for k in ("host", "port", "user", "password", "database", "dsn")})


def load_config(path: Path) -> IntakeConfig:
    raw = _read_yaml(path)
    _check_against_schema(raw)
    return IntakeConfig(
        reader=_reader(raw.get("reader") or {}),
        export=_export(raw.get("export") or {}),
        commit=_commit(raw.get("commit") or {}),
        database=_database(raw.get("database") or {}),
    )
