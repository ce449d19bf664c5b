"""Connection Domain Events.

Events emitted while sessions are created, evicted and retried, for
observability.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class SessionCreated:
    """Emitted when a new session is built and cached for an alias."""
    alias: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "session_created",
            "alias": self.alias,
        }


@dataclass(frozen=True)
class SessionEvicted:
    """Emitted when a cached session is removed (explicit, expired, retry)."""
    alias: str
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "session_evicted",
            "alias": self.alias,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class RetryTriggered:
    """Emitted when a retryable failure causes a session refresh and retry."""
    alias: str
    classification: str
    error: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": "retry_triggered",
            "alias": self.alias,
            "classification": self.classification,
            "error": self.error,
        }
