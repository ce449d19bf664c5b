"""Tests for the server shutdown lifespan."""
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from nowmcp.container import ServiceContainer
from nowmcp.domains.connection import SessionCache
from nowmcp.server import _install_shutdown_lifespan, mcp


def _container():
    factory = SimpleNamespace(aclose=AsyncMock())
    cache = SessionCache(default_alias="dev")
    cache.store("dev", object())
    return ServiceContainer(_session_factory=factory, _cache=cache), factory


class TestShutdownLifespan:
    @pytest.mark.asyncio
    async def test_closes_container_when_server_stops(self):
        container, factory = _container()
        with patch.object(mcp, "_mcp_server", MagicMock(lifespan=None), create=True):
            _install_shutdown_lifespan(container)
            lifespan = mcp._mcp_server.lifespan

            async with lifespan(mcp) as context:
                assert context == {}
                factory.aclose.assert_not_awaited()

        factory.aclose.assert_awaited_once()
        assert container.cache.aliases == []

    @pytest.mark.asyncio
    async def test_chains_existing_lifespan(self):
        container, factory = _container()
        order = []

        @asynccontextmanager
        async def existing(server):
            order.append("enter")
            yield {"ready": True}
            order.append("exit")

        with patch.object(mcp, "_mcp_server", MagicMock(lifespan=existing), create=True):
            _install_shutdown_lifespan(container)
            async with mcp._mcp_server.lifespan(mcp) as context:
                assert context == {"ready": True}

        assert order == ["enter", "exit"]
        factory.aclose.assert_awaited_once()
