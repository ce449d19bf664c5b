"""Shared Kernel - Error taxonomy shared across bounded contexts.

These types are intentionally minimal and shared between:
- Connection Context (raises configuration/credential/transport errors)
- Batch Execution Context (raises reference errors, records remote errors)

The error classifier in the Connection Context inspects these types to
decide whether a failure is worth one retry with a fresh session.
"""

from __future__ import annotations

from typing import Optional


class NowMcpError(Exception):
    """Base exception for all now-mcp domain errors."""

    pass


class ConfigurationError(NowMcpError):
    """Raised when no instance alias can be resolved.

    Happens when the caller passes no alias and no default alias was
    configured. Fatal and never retried.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or (
                "No instance specified. Either pass an instance alias "
                "or set the NOWMCP_AUTH_ALIAS environment variable."
            )
        )


class CredentialNotFoundError(NowMcpError):
    """Raised when the credential store has nothing for an alias.

    Attributes:
        alias: The alias that could not be resolved
    """

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(
            f'No credentials found for auth alias "{alias}". '
            f"Add an entry for it to the credentials file or set "
            f"the NOWMCP_<ALIAS>_* environment variables."
        )


class RetryableConnectionError(NowMcpError):
    """Transient transport failure or dead-session indicator.

    Recovered automatically once by the RetryManager (evict, re-resolve,
    retry). If the retry also fails, the second error is surfaced as-is.
    """

    pass


class UnresolvedReferenceError(NowMcpError):
    """Raised when a batch payload references an unknown ``${name}``.

    Treated as an ordinary per-operation failure by the batch executor.

    Attributes:
        name: The placeholder name that has no recorded identifier
        operation_index: Zero-based index of the referencing operation
    """

    def __init__(self, name: str, operation_index: int) -> None:
        self.name = name
        self.operation_index = operation_index
        super().__init__(
            f"Unresolved reference ${{{name}}} in operation {operation_index}: "
            f"no earlier operation saved an identifier as '{name}'"
        )


class RemoteOperationError(NowMcpError):
    """Error status returned by the remote platform for a request.

    Attributes:
        status_code: HTTP status code, or None when no status was received
        message: Error text extracted from the response body
        detail: Optional extra detail from the response body
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.detail = detail
        text = message if status_code is None else f"HTTP {status_code}: {message}"
        if detail:
            text = f"{text} ({detail})"
        super().__init__(text)
