"""Dependency Injection Container for now-mcp DDD domains.

This container wires together the bounded contexts:
- Connection Context: session cache, connection manager, retry manager
- Batch Execution Context: batch runner

Usage:
    from nowmcp.container import get_container

    container = get_container()
    result = await container.batch_runner.batch_create("dev", operations)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from nowmcp.config import ConnectionSettings
    from nowmcp.domains.batch_execution import BatchRunner
    from nowmcp.domains.connection import (
        ConnectionManager,
        CredentialResolver,
        ErrorClassifier,
        RetryManager,
        SessionCache,
        SessionFactory,
    )

logger = logging.getLogger(__name__)

# Singleton container instance
_container: Optional["ServiceContainer"] = None


def log_domain_event(event: Any) -> None:
    """Event publisher that writes domain events to the debug log."""
    to_dict = getattr(event, "to_dict", None)
    logger.debug("Domain event: %s", to_dict() if callable(to_dict) else event)


@dataclass
class ServiceContainer:
    """Simple dependency injection container for DDD services.

    Every service is built lazily on first access and shared afterwards.
    Pass collaborators to the constructor to replace the defaults (tests
    inject fake credential resolvers and session factories this way).
    """

    _settings: Optional["ConnectionSettings"] = field(default=None, repr=False)
    _credential_resolver: Optional["CredentialResolver"] = field(default=None, repr=False)
    _session_factory: Optional["SessionFactory"] = field(default=None, repr=False)
    _classifier: Optional["ErrorClassifier"] = field(default=None, repr=False)
    _cache: Optional["SessionCache"] = field(default=None, repr=False)
    _connections: Optional["ConnectionManager"] = field(default=None, repr=False)
    _retry_manager: Optional["RetryManager"] = field(default=None, repr=False)
    _batch_runner: Optional["BatchRunner"] = field(default=None, repr=False)

    @property
    def settings(self) -> "ConnectionSettings":
        """Get the connection settings (loaded from the environment)."""
        if self._settings is None:
            from nowmcp.config import load_connection_settings
            self._settings = load_connection_settings()
        return self._settings

    @property
    def credential_resolver(self) -> "CredentialResolver":
        if self._credential_resolver is None:
            from nowmcp.adapters import FileCredentialResolver
            self._credential_resolver = FileCredentialResolver(
                self.settings.credentials_file
            )
        return self._credential_resolver

    @property
    def session_factory(self) -> "SessionFactory":
        if self._session_factory is None:
            from nowmcp.adapters import TableApiSessionFactory
            self._session_factory = TableApiSessionFactory(
                timeout=self.settings.request_timeout_seconds
            )
        return self._session_factory

    @property
    def classifier(self) -> "ErrorClassifier":
        """Get the error classifier, aware of httpx transport errors."""
        if self._classifier is None:
            import httpx

            from nowmcp.domains.connection import ErrorClassifier
            self._classifier = ErrorClassifier.with_defaults(
                extra_transport_types=(httpx.TransportError,)
            )
        return self._classifier

    @property
    def cache(self) -> "SessionCache":
        if self._cache is None:
            from nowmcp.domains.connection import SessionCache
            self._cache = SessionCache(
                ttl=self.settings.session_ttl,
                default_alias=self.settings.default_alias,
            )
        return self._cache

    @property
    def connections(self) -> "ConnectionManager":
        if self._connections is None:
            from nowmcp.domains.connection import ConnectionManager
            self._connections = ConnectionManager(
                cache=self.cache,
                credential_resolver=self.credential_resolver,
                session_factory=self.session_factory,
                single_flight=self.settings.single_flight,
                event_publisher=log_domain_event,
            )
        return self._connections

    @property
    def retry_manager(self) -> "RetryManager":
        if self._retry_manager is None:
            from nowmcp.domains.connection import RetryManager
            self._retry_manager = RetryManager(
                connections=self.connections,
                classifier=self.classifier,
                event_publisher=log_domain_event,
            )
        return self._retry_manager

    @property
    def batch_runner(self) -> "BatchRunner":
        if self._batch_runner is None:
            from nowmcp.domains.batch_execution import BatchRunner
            self._batch_runner = BatchRunner(
                retry_manager=self.retry_manager,
                sessions=self.connections,
                event_publisher=log_domain_event,
            )
        return self._batch_runner

    async def aclose(self) -> None:
        """Drop cached sessions and close the remote client, if one was built."""
        if self._cache is not None:
            dropped = self._cache.clear()
            logger.debug("Dropped %d cached session(s) on shutdown", dropped)
        aclose = getattr(self._session_factory, "aclose", None)
        if aclose is not None:
            await aclose()


def get_container() -> ServiceContainer:
    """Get the singleton service container.

    Returns:
        The shared ServiceContainer instance
    """
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install ``container`` as the singleton (for tests and embedding)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset the container (for testing).

    Clears the singleton instance so a fresh container is created
    on next get_container() call.
    """
    global _container
    _container = None
