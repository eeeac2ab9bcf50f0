"""
Structured JSON logging for the CRM workflow kernel.

Every record under the ``crm_kernel`` logger namespace is one JSON line:
an envelope (``ts``, ``level``, ``logger``, ``message``), the workflow
context bound for the current request or bulk run, then the record's
``extra`` fields.  Kernel errors logged with ``exc_info`` also contribute
their ``code`` and structured attributes as ``exc_*`` fields.

Context fields
--------------
correlation_id  request id assigned by the host
actor_id        principal performing the transition
entity_kind     ``EntityKind`` value of the entity being changed
entity_id       id of the entity being changed
workflow        workflow service name (``customer_lifecycle`` ...)
operation       bulk operation name (``user_access.to_disabled`` ...)
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import dataclasses
import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "crm_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "entity_kind",
    "entity_id",
    "workflow",
    "operation",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("crm_log_context", default=_EMPTY)


def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
    """Current context plus ``fields``; unknown names and None values are dropped."""
    updates = {
        name: str(value)
        for name, value in fields.items()
        if name in CONTEXT_FIELDS and value is not None
    }
    if not updates:
        return _context.get()
    return MappingProxyType({**_context.get(), **updates})


class LogContext:
    """
    Workflow fields attached to every record logged in the current context.

    Backed by a single ContextVar holding an immutable mapping, so threads
    and asyncio tasks each see their own values.
    """

    @staticmethod
    def set(
        *,
        correlation_id: str | None = None,
        actor_id: str | None = None,
        entity_kind: str | None = None,
        entity_id: str | None = None,
        workflow: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Set fields for the rest of the current context.  None leaves a field as is."""
        _context.set(_merged({
            "correlation_id": correlation_id,
            "actor_id": actor_id,
            "entity_kind": entity_kind,
            "entity_id": entity_id,
            "workflow": workflow,
            "operation": operation,
        }))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Layer ``fields`` over the context for a ``with`` block, then restore it."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    """JSON fallback for the value types workflow code logs."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, datetime)):
        return str(value) if isinstance(value, UUID) else value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(str(item) for item in value)
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
        # Kernel errors keep their structured data in public attributes.
        for name, value in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, context, extras, error fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context.get())
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger ``crm_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``crm_kernel`` logger.

    Only the first call after import (or after ``reset_logging``) has any
    effect.  The namespace does not propagate to the root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    namespace = logging.getLogger(LOGGER_NAMESPACE)
    namespace.setLevel(level)
    namespace.propagate = False
    handler = handler or logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    namespace.addHandler(handler)


def reset_logging() -> None:
    """Drop the handlers ``configure_logging`` attached.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(namespace.handlers):
        namespace.removeHandler(handler)
    namespace.setLevel(logging.WARNING)
