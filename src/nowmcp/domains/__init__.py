"""Domain-Driven Design bounded contexts for now-mcp.

This package contains:
- Connection Context: per-alias session cache, error classification,
  single-retry wrapper
- Batch Execution Context: ordered create/update batches with
  identifier binding and failure policy
- Shared Kernel: the error taxonomy both contexts use
"""

from nowmcp.domains.shared import (
    ConfigurationError,
    CredentialNotFoundError,
    NowMcpError,
    RemoteOperationError,
    RetryableConnectionError,
    UnresolvedReferenceError,
)

from nowmcp.domains.connection import (
    ConnectionManager,
    Credential,
    ErrorClassification,
    ErrorClassifier,
    RetryManager,
    SessionCache,
    SessionTtl,
)

from nowmcp.domains.batch_execution import (
    BatchExecution,
    BatchResult,
    BatchRunner,
    FailurePolicy,
)

__all__ = [
    # Shared kernel
    "ConfigurationError",
    "CredentialNotFoundError",
    "NowMcpError",
    "RemoteOperationError",
    "RetryableConnectionError",
    "UnresolvedReferenceError",
    # Connection
    "ConnectionManager",
    "Credential",
    "ErrorClassification",
    "ErrorClassifier",
    "RetryManager",
    "SessionCache",
    "SessionTtl",
    # Batch execution
    "BatchExecution",
    "BatchResult",
    "BatchRunner",
    "FailurePolicy",
]
