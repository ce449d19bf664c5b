"""Batch Execution Domain Services.

Contains the BatchRunner (sequential execution engine), the
PayloadResolver, and Protocol definitions for the session-facing
collaborators.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from nowmcp.domains.shared.kernel import RemoteOperationError, UnresolvedReferenceError

from .aggregates import BatchExecution, Operation
from .entities import BatchResult, CreateOperation
from .events import BatchCompleted, BatchStarted, OperationFailed, OperationSucceeded
from .value_objects import Placeholder

logger = logging.getLogger(__name__)


# ── Protocol Definitions ──────────────────────────────────────────────

@runtime_checkable
class RecordWriter(Protocol):
    """Protocol for the remote session handle used by batches."""
    async def create_record(self, target: str, payload: Dict[str, Any]) -> str: ...

    async def update_record(
        self, target: str, record_id: str, payload: Dict[str, Any]
    ) -> Dict[str, Any]: ...


@runtime_checkable
class SessionProvider(Protocol):
    """Protocol for resolving sessions (anti-corruption layer to connection domain)."""
    def resolve_alias(self, alias: Optional[str] = None) -> str: ...

    async def resolve(self, alias: Optional[str] = None) -> Any: ...


@runtime_checkable
class RetryingExecutor(Protocol):
    """Protocol for running one remote call with session-refresh retry."""
    async def with_retry(
        self, alias: Optional[str], operation: Callable[[Any], Awaitable[Any]]
    ) -> Any: ...


EventPublisher = Optional[Callable[..., None]]


# ── PayloadResolver ───────────────────────────────────────────────────

class PayloadResolver:
    """Stateless service for ``${name}`` substitution in create payloads.

    Only top-level string values are rewritten; numbers, booleans, lists
    and nested objects pass through untouched.
    """

    def resolve(
        self,
        payload: Mapping[str, Any],
        generated_ids: Mapping[str, str],
        operation_index: int,
    ) -> Dict[str, Any]:
        """Return a new payload with every placeholder replaced.

        Raises:
            UnresolvedReferenceError: If a name was never saved earlier
        """
        resolved: Dict[str, Any] = {}
        for key, value in payload.items():
            if isinstance(value, str):
                value = self._substitute(value, generated_ids, operation_index)
            resolved[key] = value
        return resolved

    def _substitute(
        self,
        text: str,
        generated_ids: Mapping[str, str],
        operation_index: int,
    ) -> str:
        result = text
        for ref in Placeholder.find_all(text):
            if ref.name not in generated_ids:
                raise UnresolvedReferenceError(ref.name, operation_index)
            result = result.replace(ref.raw, str(generated_ids[ref.name]))
        return result


# ── BatchRunner ───────────────────────────────────────────────────────

@dataclass
class BatchRunner:
    """Sequential execution engine for create and update batches.

    Operation *i* is issued only after operation *i-1* has completed or
    been recorded as failed. Each operation is one retry-wrapped call.
    """
    retry_manager: RetryingExecutor
    sessions: SessionProvider
    payload_resolver: PayloadResolver = field(default_factory=PayloadResolver)
    event_publisher: EventPublisher = None

    async def batch_create(
        self,
        alias: Optional[str],
        operations: Sequence[Mapping[str, Any]],
        transactional: bool = True,
    ) -> BatchResult:
        """Create records in order, binding ``${name}`` to earlier ids.

        With ``transactional`` (the default) the batch stops at the first
        failure; otherwise every operation is attempted.
        """
        batch = BatchExecution.for_create(operations, transactional, alias=alias)
        return await self.execute(batch)

    async def batch_update(
        self,
        alias: Optional[str],
        updates: Sequence[Mapping[str, Any]],
        stop_on_error: bool = False,
    ) -> BatchResult:
        """Update records in order; by default failures do not stop the batch."""
        batch = BatchExecution.for_update(updates, stop_on_error, alias=alias)
        return await self.execute(batch)

    async def execute(self, batch: BatchExecution) -> BatchResult:
        """Run all operations of ``batch`` and return its result.

        Alias and credential problems surface before the first operation
        and propagate to the caller.
        """
        alias = self.sessions.resolve_alias(batch.alias)
        if batch.operations:
            await self.sessions.resolve(alias)

        batch.start_clock()
        self._publish(BatchStarted(
            batch_id=batch.batch_id.value,
            kind=batch.kind.value,
            alias=alias,
            operation_count=len(batch.operations),
            policy=batch.policy.value,
        ))

        for operation in batch.operations:
            step_start = time.monotonic()
            try:
                record_id = await self._run_operation(batch, alias, operation)
            except Exception as e:
                message = str(e) or type(e).__name__
                batch.record_failure(operation, message)
                logger.warning(
                    "Batch %s: operation %d (%s) failed: %s",
                    batch.batch_id.value, operation.index, operation.display_name, message,
                )
                self._publish(OperationFailed(
                    batch_id=batch.batch_id.value,
                    operation_index=operation.index,
                    target=operation.target,
                    error=message,
                ))
                if batch.should_stop:
                    break
                continue

            batch.record_success(operation, record_id)
            self._publish(OperationSucceeded(
                batch_id=batch.batch_id.value,
                operation_index=operation.index,
                target=operation.target,
                time_ms=int((time.monotonic() - step_start) * 1000),
                record_id=record_id,
            ))

        result = batch.finalize()
        logger.info(
            "Batch %s (%s) finished: %d/%d completed, %d error(s) in %dms",
            result.batch_id, result.kind, result.count, result.total,
            len(result.errors), result.elapsed_ms,
        )
        self._publish(BatchCompleted(
            batch_id=result.batch_id,
            success=result.success,
            count=result.count,
            error_count=len(result.errors),
            elapsed_ms=result.elapsed_ms,
        ))
        return result

    async def _run_operation(
        self, batch: BatchExecution, alias: str, operation: Operation,
    ) -> Optional[str]:
        if isinstance(operation, CreateOperation):
            payload = self.payload_resolver.resolve(
                operation.payload, batch.generated_ids, operation.index,
            )
            record_id = await self.retry_manager.with_retry(
                alias,
                lambda session: session.create_record(operation.target, payload),
            )
            if not record_id:
                raise RemoteOperationError(
                    f"Create on '{operation.target}' returned no record identifier"
                )
            return str(record_id)

        await self.retry_manager.with_retry(
            alias,
            lambda session: session.update_record(
                operation.target, operation.record_id, operation.payload,
            ),
        )
        return operation.record_id

    def _publish(self, event: Any) -> None:
        if self.event_publisher is None:
            return
        try:
            self.event_publisher(event)
        except Exception:
            logger.debug("Event publisher failed for %r", event, exc_info=True)
