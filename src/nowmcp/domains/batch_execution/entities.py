"""Batch Execution Domain Entities.

Operations are identified by their position within a batch (index).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class CreateOperation:
    """One pending create in a batch.

    Attributes:
        index: Zero-based position in the batch
        target: Table the record is created in
        payload: Field values; strings may contain ``${name}`` tokens
        save_as: Key under which the generated identifier is recorded
    """
    __test__ = False  # Suppress pytest collection

    index: int
    target: str
    payload: Dict[str, Any]
    save_as: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Human-readable operation name for logs."""
        if self.save_as:
            return f"create {self.target} as {self.save_as}"
        return f"create {self.target}"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "index": self.index,
            "table": self.target,
            "data": dict(self.payload),
        }
        if self.save_as:
            d["saveAs"] = self.save_as
        return d


@dataclass
class UpdateOperation:
    """One pending update in a batch.

    Attributes:
        index: Zero-based position in the batch
        target: Table holding the record
        record_id: Identifier of the record to update
        payload: Field values to write
    """
    __test__ = False  # Suppress pytest collection

    index: int
    target: str
    record_id: str
    payload: Dict[str, Any]

    @property
    def display_name(self) -> str:
        return f"update {self.target}/{self.record_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "table": self.target,
            "sysId": self.record_id,
            "data": dict(self.payload),
        }


@dataclass(frozen=True)
class OperationError:
    """A failed operation, reported with its batch position.

    Attributes:
        operation_index: Zero-based index of the failed operation
        target: Table the operation addressed
        message: The error text, verbatim
        record_id: Record identifier for updates
    """
    __test__ = False  # Suppress pytest collection

    operation_index: int
    target: str
    message: str
    record_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "operation_index": self.operation_index,
            "table": self.target,
            "error": self.message,
        }
        if self.record_id is not None:
            d["sys_id"] = self.record_id
        return d


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one batch invocation. Built once, returned, not retained.

    Attributes:
        batch_id: Identifier of the batch execution
        kind: Create or update
        success: True iff ``errors`` is empty
        count: Number of operations that completed
        total: Number of operations submitted
        generated_ids: ``save_as`` key -> generated identifier
        errors: Failed operations, in execution order
        elapsed_ms: Wall-clock duration of the batch
    """
    __test__ = False  # Suppress pytest collection

    batch_id: str
    kind: str
    success: bool
    count: int
    total: int
    generated_ids: Dict[str, str] = field(default_factory=dict)
    errors: Tuple[OperationError, ...] = ()
    elapsed_ms: int = 0

    @property
    def error_indexes(self) -> List[int]:
        return [e.operation_index for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict for MCP responses."""
        count_key = "created_count" if self.kind == "create" else "updated_count"
        d: Dict[str, Any] = {
            "success": self.success,
            "batch_id": self.batch_id,
            count_key: self.count,
            "total": self.total,
            "execution_time_ms": self.elapsed_ms,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.kind == "create":
            d["sys_ids"] = dict(self.generated_ids)
        return d
