"""Batch Execution Bounded Context.

Ordered create/update batches against the remote platform, with
``${name}`` binding of generated identifiers between create steps and
a per-batch failure policy (stop on first error, or continue).
"""
from .value_objects import (
    BatchId,
    BatchKind,
    FailurePolicy,
    Placeholder,
)
from .entities import (
    BatchResult,
    CreateOperation,
    OperationError,
    UpdateOperation,
)
from .aggregates import BatchExecution
from .events import (
    BatchCompleted,
    BatchStarted,
    OperationFailed,
    OperationSucceeded,
)
from .services import (
    BatchRunner,
    PayloadResolver,
    RecordWriter,
    RetryingExecutor,
    SessionProvider,
)

__all__ = [
    # Value objects
    "BatchId",
    "BatchKind",
    "FailurePolicy",
    "Placeholder",
    # Entities
    "BatchResult",
    "CreateOperation",
    "OperationError",
    "UpdateOperation",
    # Aggregates
    "BatchExecution",
    # Events
    "BatchCompleted",
    "BatchStarted",
    "OperationFailed",
    "OperationSucceeded",
    # Services
    "BatchRunner",
    "PayloadResolver",
    "RecordWriter",
    "RetryingExecutor",
    "SessionProvider",
]
