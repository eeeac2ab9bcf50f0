"""
Configuration schema (``crm_config.schema``).

Frozen dataclasses describing runtime settings.  Nothing here can change a
transition graph; graphs are fixed in ``crm_kernel.domain``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class WorkflowConfig:
    """Tunables for workflow services.

    ``recent_activity_days`` is the window used by dashboard statistics.
    ``max_bulk_items`` caps a single bulk call; ``None`` means no cap.
    """

    recent_activity_days: int = 7
    max_bulk_items: int | None = 500


@dataclass(frozen=True)
class WorkflowSettings:
    """Complete runtime configuration with its identity."""

    config_id: str
    version: int
    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    checksum: str = ""
