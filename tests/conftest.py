"""Pytest configuration and shared fakes for the now-mcp test suite."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pytest

from nowmcp.config import ConnectionSettings
from nowmcp.container import ServiceContainer, reset_container, set_container
from nowmcp.domains.batch_execution import BatchRunner
from nowmcp.domains.connection import (
    ConnectionManager,
    Credential,
    ErrorClassifier,
    RetryManager,
    SessionCache,
    SessionTtl,
)


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class RemoteCall:
    session: str
    op: str
    target: str
    record_id: Optional[str]
    payload: Dict[str, Any]


@dataclass
class FakeBackend:
    """Remote platform stand-in shared by every FakeSession.

    ``script`` is consumed one entry per call: an exception is raised,
    any other non-None value is returned, None means default success.
    """

    calls: List[RemoteCall] = field(default_factory=list)
    script: List[Any] = field(default_factory=list)
    _ids: Any = field(default_factory=lambda: itertools.count(1))

    async def handle(self, session: "FakeSession", op, target, record_id, payload):
        self.calls.append(RemoteCall(session.name, op, target, record_id, dict(payload)))
        outcome = self.script.pop(0) if self.script else None
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is not None:
            return outcome
        if op == "create":
            return f"sys{next(self._ids):04d}"
        return {"sys_id": record_id, **payload}

    def targets(self) -> List[str]:
        return [call.target for call in self.calls]


class FakeSession:
    def __init__(self, name: str, backend: FakeBackend):
        self.name = name
        self.backend = backend

    async def create_record(self, target, payload):
        return await self.backend.handle(self, "create", target, None, payload)

    async def update_record(self, target, record_id, payload):
        return await self.backend.handle(self, "update", target, record_id, payload)


class FakeSessionFactory:
    def __init__(self, backend: FakeBackend):
        self.backend = backend
        self.created: List[FakeSession] = []

    def create(self, alias: str, credential: Credential) -> FakeSession:
        session = FakeSession(f"{alias}#{len(self.created) + 1}", self.backend)
        self.created.append(session)
        return session


class FakeCredentialResolver:
    def __init__(self, known=("dev", "prod")):
        self.known = set(known)
        self.calls: List[str] = []

    async def resolve(self, alias: str) -> Optional[Credential]:
        self.calls.append(alias)
        if alias not in self.known:
            return None
        return Credential(
            alias=alias,
            instance_url=f"https://{alias}.example.com",
            username="admin",
            password="secret",
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def session_factory(backend) -> FakeSessionFactory:
    return FakeSessionFactory(backend)


@pytest.fixture
def credential_resolver() -> FakeCredentialResolver:
    return FakeCredentialResolver()


@pytest.fixture
def events() -> List[Any]:
    """Collects every published domain event."""
    return []


@pytest.fixture
def cache(clock) -> SessionCache:
    return SessionCache(ttl=SessionTtl.default(), default_alias="dev", clock=clock)


@pytest.fixture
def connections(cache, credential_resolver, session_factory, events) -> ConnectionManager:
    return ConnectionManager(
        cache=cache,
        credential_resolver=credential_resolver,
        session_factory=session_factory,
        event_publisher=events.append,
    )


@pytest.fixture
def retry_manager(connections, events) -> RetryManager:
    return RetryManager(
        connections=connections,
        classifier=ErrorClassifier.with_defaults(),
        event_publisher=events.append,
    )


@pytest.fixture
def batch_runner(retry_manager, connections, events) -> BatchRunner:
    return BatchRunner(
        retry_manager=retry_manager,
        sessions=connections,
        event_publisher=events.append,
    )


@pytest.fixture
def container(cache, credential_resolver, session_factory):
    """Install a ServiceContainer wired to the fakes as the singleton."""
    instance = ServiceContainer(
        _settings=ConnectionSettings(default_alias="dev"),
        _credential_resolver=credential_resolver,
        _session_factory=session_factory,
        _cache=cache,
    )
    set_container(instance)
    yield instance
    reset_container()
