"""Batch Execution Domain Events.

Events emitted during batch execution for observability.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BatchStarted:
    """Emitted when batch execution begins."""
    batch_id: str
    kind: str
    alias: str
    operation_count: int
    policy: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "batch_started",
            "batch_id": self.batch_id,
            "kind": self.kind,
            "alias": self.alias,
            "operation_count": self.operation_count,
            "policy": self.policy,
        }


@dataclass(frozen=True)
class OperationSucceeded:
    """Emitted when an operation completes."""
    batch_id: str
    operation_index: int
    target: str
    time_ms: int
    record_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "event_type": "operation_succeeded",
            "batch_id": self.batch_id,
            "operation_index": self.operation_index,
            "target": self.target,
            "time_ms": self.time_ms,
        }
        if self.record_id is not None:
            d["record_id"] = self.record_id
        return d


@dataclass(frozen=True)
class OperationFailed:
    """Emitted when an operation fails (including reference errors)."""
    batch_id: str
    operation_index: int
    target: str
    error: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "operation_failed",
            "batch_id": self.batch_id,
            "operation_index": self.operation_index,
            "target": self.target,
            "error": self.error,
        }


@dataclass(frozen=True)
class BatchCompleted:
    """Emitted when a batch finishes, whatever its outcome."""
    batch_id: str
    success: bool
    count: int
    error_count: int
    elapsed_ms: int
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "batch_completed",
            "batch_id": self.batch_id,
            "success": self.success,
            "count": self.count,
            "error_count": self.error_count,
            "elapsed_ms": self.elapsed_ms,
        }
