"""Connection Domain Value Objects.

Immutable types that carry no identity. Equality is structural.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import ClassVar


class ErrorClassification(str, enum.Enum):
    """Error taxonomy used to decide whether a failure is retried.

    Values:
        TRANSPORT: Connection reset/refused, timeout, broken pipe
        NO_RESPONSE: The remote call produced no response or no status
        SESSION_EXPIRED: The remote answered with an authorization-expired status
        FATAL: Any other failure; surfaced verbatim, never retried
    """
    TRANSPORT = "transport"
    NO_RESPONSE = "no_response"
    SESSION_EXPIRED = "session_expired"
    FATAL = "fatal"

    @property
    def is_retryable(self) -> bool:
        return self is not ErrorClassification.FATAL


class EvictionReason(str, enum.Enum):
    """Why a cached session left the cache."""
    EXPLICIT = "explicit"
    EXPIRED = "expired"
    RETRY = "retry"


@dataclass(frozen=True)
class ErrorPattern:
    """Maps an error message regex to an ErrorClassification.

    Attributes:
        classification: The error category this pattern detects.
        pattern: Compiled regex (case-insensitive matching).
        priority: Higher values are matched first.
    """
    classification: ErrorClassification
    pattern: re.Pattern  # type: ignore[type-arg]
    priority: int = 0

    @classmethod
    def from_string(
        cls,
        classification: ErrorClassification,
        pattern_str: str,
        priority: int = 0,
    ) -> ErrorPattern:
        """Convenience factory from a raw regex string."""
        return cls(
            classification=classification,
            pattern=re.compile(pattern_str, re.IGNORECASE),
            priority=priority,
        )

    def matches(self, message: str) -> bool:
        return self.pattern.search(message) is not None


@dataclass(frozen=True)
class SessionTtl:
    """Maximum age of a cached session before it is rebuilt.

    Attributes:
        seconds: Time-to-live in seconds

    Invariants:
        - seconds must be > 0

    Examples:
        >>> ttl = SessionTtl.default()  # 30 minutes
        >>> ttl = SessionTtl(seconds=60)
    """
    seconds: float

    DEFAULT_SECONDS: ClassVar[float] = 30 * 60

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ValueError(f"SessionTtl must be positive, got {self.seconds}")

    @classmethod
    def default(cls) -> SessionTtl:
        """Create a SessionTtl with the default value (30 minutes)."""
        return cls(seconds=cls.DEFAULT_SECONDS)
