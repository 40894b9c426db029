"""
Configuration Loader (``printshop_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen dataclasses
of ``printshop_config.schema``.  Runtime callers go through
``printshop_config.get_active_config()``.

Invariants enforced
-------------------
* Required keys raise ``KeyError``; malformed values raise ``ValueError``.
  No silent defaults for a malformed section.
* ``compute_checksum`` is deterministic over the raw parsed YAML.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from printshop_config.schema import (
    DatabaseDef,
    LoggingDef,
    NumberingDef,
    PrintShopConfig,
    WorkflowDef,
)

_REQUIRED_TYPES = ("ORDER", "BUDGET")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseDef:
    url = data["url"]
    if not isinstance(url, str) or not url:
        raise ValueError("database.url must be a non-empty string")
    pool_size = int(data.get("pool_size", 20))
    if pool_size < 1:
        raise ValueError(f"database.pool_size must be >= 1, got {pool_size}")
    return DatabaseDef(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=pool_size,
        max_overflow=int(data.get("max_overflow", 10)),
        sqlite_busy_timeout=float(data.get("sqlite_busy_timeout", 30.0)),
    )


def parse_numbering(type_key: str, data: dict[str, Any]) -> NumberingDef:
    """
    Parse one numbering entry.

    ``width`` is required.  ``max_value`` may be omitted (meaning
    ``10**width - 1``) but not set to a non-positive number.
    """
    width = data["width"]
    if not isinstance(width, int) or width < 1:
        raise ValueError(f"numbering.{type_key}.width must be a positive integer")
    max_value = data.get("max_value")
    if max_value is not None and (not isinstance(max_value, int) or max_value < 1):
        raise ValueError(f"numbering.{type_key}.max_value must be a positive integer")
    reset = bool(data.get("reset_each_period", False))
    period_format = data.get("period_format")
    if reset and not period_format:
        raise ValueError(
            f"numbering.{type_key}: reset_each_period requires period_format"
        )
    return NumberingDef(
        type_key=type_key,
        prefix=str(data.get("prefix") or ""),
        width=width,
        period_format=period_format,
        reset_each_period=reset,
        max_value=max_value,
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowDef:
    template = data.get("rejection_note_template", WorkflowDef.rejection_note_template)
    if "{reason}" not in template:
        raise ValueError("workflow.rejection_note_template must contain {reason}")
    return WorkflowDef(
        rejection_note_template=template,
        rejection_date_format=data.get(
            "rejection_date_format", WorkflowDef.rejection_date_format
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingDef:
    level = str(data.get("level", "INFO")).upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"logging.level is not a logging level: {level!r}")
    return LoggingDef(level=level)


def parse_config(data: dict[str, Any]) -> PrintShopConfig:
    """Parse a whole configuration document."""
    numbering_data = data["numbering"]
    numbering = tuple(
        parse_numbering(key, numbering_data[key]) for key in sorted(numbering_data)
    )
    missing = [t for t in _REQUIRED_TYPES if t not in numbering_data]
    if missing:
        raise ValueError(f"numbering is missing document types: {missing}")

    return PrintShopConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data["database"]),
        numbering=numbering,
        workflow=parse_workflow(data.get("workflow") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> PrintShopConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
