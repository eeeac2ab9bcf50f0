"""
crm_services.bulk_runner -- Apply one workflow operation to many ids.

Responsibility:
    Runs a per-id operation over a list of ids, collects per-item outcomes
    and never lets one item's failure abort the batch.

Architecture position:
    Services layer.  Operations are supplied by the workflow services
    (``bulk_transition`` and the kind-specific bulk helpers).

Invariants enforced:
    - Items run in input order; duplicates are processed as given.
    - Excluded ids are recorded as skipped and the operation is never
      invoked for them.
    - Each item is its own atomic unit.  Services wrap every transition in a
      SAVEPOINT, so a failed item leaves earlier successes in place.
    - Unexpected errors are logged with context and reported with a generic
      reason; internal details never reach the result.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from uuid import UUID

from crm_kernel.domain.dtos import BulkFailure, BulkOperationResult, TransitionOutcome
from crm_kernel.exceptions import BulkLimitExceededError, CrmKernelError
from crm_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.bulk_runner")

UNEXPECTED_FAILURE_CODE = "UNEXPECTED_ERROR"
UNEXPECTED_FAILURE_REASON = "operation failed"


class BulkOperationRunner:
    """
    Sequential bulk executor.

    Contract:
        ``operation(entity_id)`` returns a ``TransitionOutcome`` (or any
        value, treated as success) or raises.  Failed outcomes and raised
        errors both become ``BulkFailure`` entries.

    Non-goals:
        - No parallelism: all items share the caller's Session, which is
          not thread-safe.
    """

    def __init__(self, max_items: int | None = None):
        self._max_items = max_items

    def run_all(
        self,
        ids: Iterable[UUID],
        operation: Callable[[UUID], object],
        exclude: Callable[[UUID], bool] | None = None,
        operation_name: str = "bulk",
    ) -> BulkOperationResult:
        ids = list(ids)
        if self._max_items is not None and len(ids) > self._max_items:
            raise BulkLimitExceededError(len(ids), self._max_items)

        # Every record logged by the items themselves carries the bulk operation.
        with LogContext.bind(operation=operation_name):
            return self._run(ids, operation, exclude, operation_name)

    def _run(
        self,
        ids: list[UUID],
        operation: Callable[[UUID], object],
        exclude: Callable[[UUID], bool] | None,
        operation_name: str,
    ) -> BulkOperationResult:
        started = time.monotonic()
        attempted: list[UUID] = []
        succeeded: list[UUID] = []
        failures: list[BulkFailure] = []
        skipped: list[UUID] = []

        for entity_id in ids:
            if exclude is not None and exclude(entity_id):
                skipped.append(entity_id)
                logger.info("bulk_item_skipped", extra={"item_id": str(entity_id)})
                continue

            attempted.append(entity_id)
            try:
                result = operation(entity_id)
            except CrmKernelError as exc:
                failures.append(BulkFailure(entity_id, exc.code, str(exc)))
                logger.warning(
                    "bulk_item_failed",
                    extra={"item_id": str(entity_id), "code": exc.code},
                )
                continue
            except Exception:  # noqa: BLE001 -- one bad item must not end the batch
                failures.append(BulkFailure(
                    entity_id, UNEXPECTED_FAILURE_CODE, UNEXPECTED_FAILURE_REASON,
                ))
                logger.exception(
                    "bulk_item_failed",
                    extra={"item_id": str(entity_id), "code": UNEXPECTED_FAILURE_CODE},
                )
                continue

            if isinstance(result, TransitionOutcome) and not result.is_success:
                failures.append(BulkFailure(
                    entity_id, result.code or result.status.value, result.reason or "",
                ))
                logger.info(
                    "bulk_item_failed",
                    extra={"item_id": str(entity_id), "code": result.code},
                )
            else:
                succeeded.append(entity_id)

        summary = BulkOperationResult(
            operation=operation_name,
            attempted=tuple(attempted),
            succeeded=tuple(succeeded),
            failures=tuple(failures),
            skipped=tuple(skipped),
        )
        logger.info(
            "bulk_operation_completed",
            extra={
                "total": summary.total,
                "success_count": summary.success_count,
                "failure_count": summary.failure_count,
                "skip_count": summary.skip_count,
                "duration_ms": round((time.monotonic() - started) * 1000, 3),
            },
        )
        return summary
