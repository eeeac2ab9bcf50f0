"""
crm_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``WorkflowSettings``.

Architecture position:
    Configuration.  Sits beside ``crm_kernel`` and below ``crm_services``.
    The kernel MUST NEVER import from ``crm_config``; services translate
    settings into kernel constructor arguments.

Failure modes:
    - ``FileNotFoundError`` -- settings file missing.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` / ``KeyError`` -- invalid or missing values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``workflow_config_loaded`` log entry with config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from crm_config.loader import load_settings
from crm_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    WorkflowConfig,
    WorkflowSettings,
)

_logger = logging.getLogger("crm_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> WorkflowSettings:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Settings file to load.  Defaults to
            ``crm_config/sets/default.yaml``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(path)

    _logger.info(
        "workflow_config_loaded",
        extra={
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "recent_activity_days": settings.workflow.recent_activity_days,
            "max_bulk_items": settings.workflow.max_bulk_items,
        },
    )
    return settings


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "LoggingConfig",
    "WorkflowConfig",
    "WorkflowSettings",
    "get_active_config",
]
