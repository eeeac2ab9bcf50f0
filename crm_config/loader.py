"""
Configuration Loader (``crm_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into typed ``crm_config.schema``
dataclass instances.  Runtime callers use ``crm_config.get_active_config()``
rather than this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from crm_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    WorkflowConfig,
    WorkflowSettings,
)

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    pool_size = int(data.get("pool_size", 20))
    max_overflow = int(data.get("max_overflow", 10))
    if pool_size < 1:
        raise ValueError(f"database.pool_size must be >= 1, got {pool_size}")
    if max_overflow < 0:
        raise ValueError(f"database.max_overflow must be >= 0, got {max_overflow}")
    return DatabaseConfig(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=pool_size,
        max_overflow=max_overflow,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level {level!r} is not a logging level")
    return LoggingConfig(level=level)


def parse_workflow(data: dict[str, Any]) -> WorkflowConfig:
    days = int(data.get("recent_activity_days", 7))
    if days < 1:
        raise ValueError(f"workflow.recent_activity_days must be >= 1, got {days}")
    max_items = data.get("max_bulk_items", 500)
    if max_items is not None:
        max_items = int(max_items)
        if max_items < 1:
            raise ValueError(f"workflow.max_bulk_items must be >= 1, got {max_items}")
    return WorkflowConfig(recent_activity_days=days, max_bulk_items=max_items)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization; deterministic for equal data."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> WorkflowSettings:
    return WorkflowSettings(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging") or {}),
        workflow=parse_workflow(data.get("workflow") or {}),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> WorkflowSettings:
    return parse_settings(load_yaml_file(path))
