"""Connection Domain Services.

Contains the ErrorClassifier, the ConnectionManager (resolve-or-create
against the SessionCache) and the RetryManager (single retry with a
fresh session), plus the Protocol definitions for the credential store
and the remote client.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    runtime_checkable,
)

from nowmcp.domains.shared.kernel import (
    ConfigurationError,
    CredentialNotFoundError,
    RemoteOperationError,
    RetryableConnectionError,
    UnresolvedReferenceError,
)

from .aggregates import SessionCache
from .entities import Credential
from .events import RetryTriggered, SessionCreated, SessionEvicted
from .value_objects import ErrorClassification, ErrorPattern, EvictionReason

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status meaning the platform session is no longer authorized
SESSION_EXPIRED_STATUS = 401


# ── Protocol Definitions ──────────────────────────────────────────────

@runtime_checkable
class CredentialResolver(Protocol):
    """Protocol for the credential store (anti-corruption layer)."""
    async def resolve(self, alias: str) -> Optional[Credential]: ...


@runtime_checkable
class SessionFactory(Protocol):
    """Protocol for building an opaque session handle from a credential."""
    def create(self, alias: str, credential: Credential) -> Any: ...


EventPublisher = Optional[Callable[..., None]]


def _publish(publisher: EventPublisher, event: Any) -> None:
    if publisher is None:
        return
    try:
        publisher(event)
    except Exception:
        logger.debug("Event publisher failed for %r", event, exc_info=True)


# ── ErrorClassifier ───────────────────────────────────────────────────

_NON_RETRYABLE_TYPES: Tuple[Type[BaseException], ...] = (
    ConfigurationError,
    CredentialNotFoundError,
    UnresolvedReferenceError,
)


@dataclass
class ErrorClassifier:
    """Decides whether a failure looks like a dead session or a glitch.

    Checks, in order: known fatal domain errors, transport exception
    types, response status carried by the error, then message patterns
    in descending priority. Anything unmatched is FATAL.
    """
    _patterns: List[ErrorPattern] = field(default_factory=list)
    transport_types: Tuple[Type[BaseException], ...] = (
        RetryableConnectionError,
        ConnectionError,
        TimeoutError,
        asyncio.TimeoutError,
    )

    @classmethod
    def with_defaults(
        cls,
        extra_transport_types: Tuple[Type[BaseException], ...] = (),
    ) -> ErrorClassifier:
        """Create a classifier pre-populated with the default patterns."""
        classifier = cls()
        classifier.transport_types = classifier.transport_types + tuple(
            extra_transport_types
        )
        classifier._register_default_patterns()
        return classifier

    def classify(self, error: Optional[BaseException]) -> ErrorClassification:
        """Classify an exception raised by a remote operation."""
        if error is None:
            return ErrorClassification.FATAL
        if isinstance(error, _NON_RETRYABLE_TYPES):
            return ErrorClassification.FATAL
        if isinstance(error, self.transport_types):
            return ErrorClassification.TRANSPORT

        if isinstance(error, RemoteOperationError):
            return self._classify_status(error.status_code)
        response = getattr(error, "response", None)
        if response is not None:
            by_response = self.classify_response(response)
            if by_response.is_retryable:
                return by_response

        return self.classify_message(str(error))

    def classify_message(self, message: str) -> ErrorClassification:
        """Classify an error message using registered patterns.

        Patterns are evaluated in descending priority order. The first
        match wins.
        """
        for pattern in sorted(self._patterns, key=lambda p: -p.priority):
            if pattern.matches(message):
                return pattern.classification
        return ErrorClassification.FATAL

    def classify_response(self, response: Any) -> ErrorClassification:
        """Classify an HTTP-like response object (or dict, or None)."""
        if response is None:
            return ErrorClassification.NO_RESPONSE
        if isinstance(response, dict):
            status = response.get("status", response.get("status_code"))
        else:
            status = getattr(response, "status_code", None)
            if status is None:
                status = getattr(response, "status", None)
        return self._classify_status(status)

    def is_retryable(self, error: Optional[BaseException]) -> bool:
        return self.classify(error).is_retryable

    def is_retryable_response(self, response: Any) -> bool:
        """True for a missing response, a status-less one, or a 401."""
        return self.classify_response(response).is_retryable

    def register_pattern(self, pattern: ErrorPattern) -> None:
        """Register a custom error pattern."""
        self._patterns.append(pattern)

    @property
    def pattern_count(self) -> int:
        return len(self._patterns)

    @staticmethod
    def _classify_status(status: Any) -> ErrorClassification:
        if status is None:
            return ErrorClassification.NO_RESPONSE
        try:
            code = int(status)
        except (TypeError, ValueError):
            return ErrorClassification.FATAL
        if code == SESSION_EXPIRED_STATUS:
            return ErrorClassification.SESSION_EXPIRED
        return ErrorClassification.FATAL

    def _register_default_patterns(self) -> None:
        patterns = [
            # Node-style errno codes surfaced by platform SDKs and proxies
            (
                ErrorClassification.TRANSPORT,
                r"ECONNREFUSED|ECONNRESET|ETIMEDOUT|EPIPE|socket hang up|fetch failed",
                10,
            ),
            (
                ErrorClassification.TRANSPORT,
                r"connection (reset|refused|aborted)|broken pipe|timed out"
                r"|server disconnected|remote end closed",
                10,
            ),
            (ErrorClassification.NO_RESPONSE, r"No response|Body not XML", 5),
        ]
        for classification, regex, priority in patterns:
            self.register_pattern(
                ErrorPattern.from_string(classification, regex, priority)
            )


# ── ConnectionManager ─────────────────────────────────────────────────

@dataclass
class ConnectionManager:
    """Resolve-or-create sessions against the SessionCache.

    Cold resolves for the same alias may race and build two sessions;
    the later store wins. Set ``single_flight`` to serialize resolves
    per alias instead.
    """
    cache: SessionCache
    credential_resolver: CredentialResolver
    session_factory: SessionFactory
    single_flight: bool = False
    event_publisher: EventPublisher = None
    # alias -> (lock, number of resolves holding or awaiting it)
    _flight_locks: Dict[str, Tuple[asyncio.Lock, int]] = field(
        default_factory=dict, repr=False
    )
    _flight_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def resolve_alias(self, alias: Optional[str] = None) -> str:
        return self.cache.resolve_alias(alias)

    async def resolve(self, alias: Optional[str] = None) -> Any:
        """Return a live session for ``alias``, creating one if needed.

        Raises:
            ConfigurationError: No alias given and no default configured
            CredentialNotFoundError: The credential store has no entry
        """
        key = self.cache.resolve_alias(alias)
        entry = self._live_entry(key)
        if entry is not None:
            return entry.session

        if not self.single_flight:
            return await self._create(key)

        async with self._flight(key):
            entry = self._live_entry(key)
            if entry is not None:
                return entry.session
            return await self._create(key)

    def evict(
        self,
        alias: Optional[str] = None,
        reason: EvictionReason = EvictionReason.EXPLICIT,
    ) -> bool:
        """Drop the cached session for ``alias``. No-op if absent."""
        key = self.cache.resolve_alias(alias)
        removed = self.cache.evict(key)
        if removed:
            logger.info("Evicted session for alias '%s' (%s)", key, reason.value)
            _publish(self.event_publisher, SessionEvicted(alias=key, reason=reason.value))
        return removed

    def _live_entry(self, key: str):
        if self.cache.evict_if_expired(key):
            logger.info("Cache TTL expired for '%s', refreshing session", key)
            _publish(
                self.event_publisher,
                SessionEvicted(alias=key, reason=EvictionReason.EXPIRED.value),
            )
        return self.cache.get_live(key)

    async def _create(self, key: str) -> Any:
        credential = await self.credential_resolver.resolve(key)
        if credential is None:
            raise CredentialNotFoundError(key)
        session = self.session_factory.create(key, credential)
        self.cache.store(key, session)
        logger.info("Created session for alias '%s'", key)
        _publish(self.event_publisher, SessionCreated(alias=key))
        return session

    @asynccontextmanager
    async def _flight(self, key: str) -> AsyncIterator[None]:
        """Hold the per-alias lock; the entry is dropped when its last user leaves."""
        with self._flight_guard:
            lock, users = self._flight_locks.get(key, (None, 0))
            if lock is None:
                lock = asyncio.Lock()
            self._flight_locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            with self._flight_guard:
                lock, users = self._flight_locks[key]
                if users <= 1:
                    del self._flight_locks[key]
                else:
                    self._flight_locks[key] = (lock, users - 1)


# ── RetryManager ──────────────────────────────────────────────────────

@dataclass
class RetryManager:
    """Runs one remote operation with at most one session-refresh retry.

    On a retryable failure the cached session is evicted, a fresh one is
    resolved, and the operation runs exactly once more. The outcome of
    that second attempt is returned or raised as-is.
    """
    connections: ConnectionManager
    classifier: ErrorClassifier = field(default_factory=ErrorClassifier.with_defaults)
    event_publisher: EventPublisher = None

    async def with_retry(
        self,
        alias: Optional[str],
        operation: Callable[[Any], Awaitable[T]],
    ) -> T:
        key = self.connections.resolve_alias(alias)
        session = await self.connections.resolve(key)
        try:
            return await operation(session)
        except Exception as exc:
            classification = self.classifier.classify(exc)
            if not classification.is_retryable:
                raise
            logger.warning(
                "Retryable error (%s) for alias '%s', refreshing session and retrying: %s",
                classification.value, key, exc,
            )
            _publish(
                self.event_publisher,
                RetryTriggered(
                    alias=key, classification=classification.value, error=str(exc)
                ),
            )
            self.connections.evict(key, reason=EvictionReason.RETRY)

        fresh_session = await self.connections.resolve(key)
        return await operation(fresh_session)
