"""Connection Bounded Context.

Per-alias session cache with TTL expiry, error classification, and a
single-retry wrapper that refreshes a stale session before retrying.
"""
from .value_objects import (
    ErrorClassification,
    ErrorPattern,
    EvictionReason,
    SessionTtl,
)
from .entities import (
    Credential,
    SessionEntry,
)
from .aggregates import SessionCache
from .events import (
    RetryTriggered,
    SessionCreated,
    SessionEvicted,
)
from .services import (
    ConnectionManager,
    CredentialResolver,
    ErrorClassifier,
    RetryManager,
    SessionFactory,
)

__all__ = [
    # Value objects
    "ErrorClassification",
    "ErrorPattern",
    "EvictionReason",
    "SessionTtl",
    # Entities
    "Credential",
    "SessionEntry",
    # Aggregates
    "SessionCache",
    # Events
    "RetryTriggered",
    "SessionCreated",
    "SessionEvicted",
    # Services
    "ConnectionManager",
    "CredentialResolver",
    "ErrorClassifier",
    "RetryManager",
    "SessionFactory",
]
