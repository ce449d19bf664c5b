"""Batch Execution Domain Aggregate Root.

**BatchExecution** is the aggregate for running an ordered batch of
create or update operations: it owns the operations, the failure
policy, the identifiers generated so far, and the recorded errors.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .entities import BatchResult, CreateOperation, OperationError, UpdateOperation
from .value_objects import BatchId, BatchKind, FailurePolicy

Operation = Union[CreateOperation, UpdateOperation]


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _require_mapping(raw: Any, index: int) -> None:
    if not isinstance(raw, Mapping):
        raise ValueError(
            f"Operation {index}: must be an object, got {type(raw).__name__}"
        )


def _parse_payload(data: Mapping[str, Any], index: int) -> Dict[str, Any]:
    payload = _first(data, "data", "payload")
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(
            f"Operation {index}: data must be an object, got {type(payload).__name__}"
        )
    return dict(payload)


def _parse_target(data: Mapping[str, Any], index: int) -> str:
    target = _first(data, "table", "target")
    if not isinstance(target, str) or not target.strip():
        raise ValueError(f"Operation {index}: table is required")
    return target.strip()


@dataclass
class BatchExecution:
    """Aggregate root for one batch invocation.

    Invariants:
        - Operations are indexed 0..n-1 in submission order
        - ``generated_ids`` only holds identifiers of completed creates
        - Under STOP, no operation is recorded after the first failure

    Lifecycle:
        1. ``for_create()`` / ``for_update()`` factory from tool input
        2. ``start_clock()``
        3. For each operation: ``record_success()`` or ``record_failure()``,
           checking ``should_stop`` after each failure
        4. ``finalize()`` returns the BatchResult

    Concurrency:
        Not thread-safe. A batch is driven by one coroutine, sequentially.
    """
    __test__ = False  # Suppress pytest collection

    batch_id: BatchId
    kind: BatchKind
    operations: List[Operation]
    policy: FailurePolicy
    alias: Optional[str] = None
    generated_ids: Dict[str, str] = field(default_factory=dict)
    errors: List[OperationError] = field(default_factory=list)
    completed_count: int = 0
    _start_time: Optional[float] = field(default=None, repr=False)
    _end_time: Optional[float] = field(default=None, repr=False)

    @classmethod
    def for_create(
        cls,
        operations_data: Sequence[Mapping[str, Any]],
        transactional: bool = True,
        alias: Optional[str] = None,
    ) -> BatchExecution:
        """Factory from create tool input.

        Each item needs ``table`` and ``data``, and may carry ``saveAs``.

        Raises:
            ValueError: If an item is malformed
        """
        operations: List[Operation] = []
        for i, raw in enumerate(operations_data):
            _require_mapping(raw, i)
            save_as = _first(raw, "saveAs", "save_as")
            if save_as is not None and (not isinstance(save_as, str) or not save_as.strip()):
                raise ValueError(f"Operation {i}: saveAs must be a non-empty string")
            operations.append(CreateOperation(
                index=i,
                target=_parse_target(raw, i),
                payload=_parse_payload(raw, i),
                save_as=save_as.strip() if save_as else None,
            ))
        return cls(
            batch_id=BatchId.generate(),
            kind=BatchKind.CREATE,
            operations=operations,
            policy=FailurePolicy.for_create(transactional),
            alias=alias,
        )

    @classmethod
    def for_update(
        cls,
        updates_data: Sequence[Mapping[str, Any]],
        stop_on_error: bool = False,
        alias: Optional[str] = None,
    ) -> BatchExecution:
        """Factory from update tool input.

        Each item needs ``table``, ``sysId`` and ``data``.

        Raises:
            ValueError: If an item is malformed
        """
        operations: List[Operation] = []
        for i, raw in enumerate(updates_data):
            _require_mapping(raw, i)
            record_id = _first(raw, "sysId", "sys_id", "record_id")
            if record_id is None or not str(record_id).strip():
                raise ValueError(f"Operation {i}: sysId is required")
            operations.append(UpdateOperation(
                index=i,
                target=_parse_target(raw, i),
                record_id=str(record_id).strip(),
                payload=_parse_payload(raw, i),
            ))
        return cls(
            batch_id=BatchId.generate(),
            kind=BatchKind.UPDATE,
            operations=operations,
            policy=FailurePolicy.for_update(stop_on_error),
            alias=alias,
        )

    # ------------------------------------------------------------------
    # Clock management
    # ------------------------------------------------------------------

    def start_clock(self) -> None:
        self._start_time = time.monotonic()
        self._end_time = None

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds elapsed since start_clock() (frozen once finalized)."""
        if self._start_time is None:
            return 0.0
        end = self._end_time if self._end_time is not None else time.monotonic()
        return (end - self._start_time) * 1000

    # ------------------------------------------------------------------
    # Result recording
    # ------------------------------------------------------------------

    def record_success(self, operation: Operation, record_id: Optional[str] = None) -> None:
        """Record a completed operation.

        For a create with ``save_as``, the generated identifier becomes
        available to later operations.
        """
        self.completed_count += 1
        if isinstance(operation, CreateOperation) and operation.save_as:
            self.generated_ids[operation.save_as] = str(record_id)

    def record_failure(self, operation: Operation, message: str) -> None:
        """Record a failed operation with its verbatim error text."""
        self.errors.append(OperationError(
            operation_index=operation.index,
            target=operation.target,
            message=message,
            record_id=getattr(operation, "record_id", None),
        ))

    @property
    def should_stop(self) -> bool:
        """True once a failure has been recorded under the STOP policy."""
        return self.policy == FailurePolicy.STOP and bool(self.errors)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize(self) -> BatchResult:
        """Stop the clock and build the BatchResult."""
        if self._start_time is not None and self._end_time is None:
            self._end_time = time.monotonic()
        return BatchResult(
            batch_id=self.batch_id.value,
            kind=self.kind.value,
            success=not self.errors,
            count=self.completed_count,
            total=len(self.operations),
            generated_ids=dict(self.generated_ids),
            errors=tuple(self.errors),
            elapsed_ms=int(self.elapsed_ms),
        )

    def to_response_dict(self) -> Dict[str, Any]:
        """Serialize the batch result for MCP tool output."""
        return self.finalize().to_dict()
