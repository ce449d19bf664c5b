"""Shared Kernel - Types shared across bounded contexts.

This module contains the error taxonomy shared between the Connection
Context and the Batch Execution Context.
"""

from nowmcp.domains.shared.kernel import (
    ConfigurationError,
    CredentialNotFoundError,
    NowMcpError,
    RemoteOperationError,
    RetryableConnectionError,
    UnresolvedReferenceError,
)

__all__ = [
    "ConfigurationError",
    "CredentialNotFoundError",
    "NowMcpError",
    "RemoteOperationError",
    "RetryableConnectionError",
    "UnresolvedReferenceError",
]
