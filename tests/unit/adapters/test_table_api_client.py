"""Tests for the httpx Table API client."""
import base64
import json

import httpx
import pytest

from nowmcp.adapters.table_api_client import TableApiSession, TableApiSessionFactory
from nowmcp.domains.connection import Credential, ErrorClassification, ErrorClassifier
from nowmcp.domains.shared import RemoteOperationError, RetryableConnectionError

CREDENTIAL = Credential("dev", "dev123.service-now.com", "admin", "pw")


def _factory(handler):
    return TableApiSessionFactory(transport=httpx.MockTransport(handler))


class TestCreateRecord:
    @pytest.mark.asyncio
    async def test_posts_payload_and_returns_sys_id(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(201, json={"result": {"sys_id": "abc123", "number": "INC1"}})

        factory = _factory(handler)
        session = factory.create("dev", CREDENTIAL)
        sys_id = await session.create_record("incident", {"short_description": "x"})

        assert sys_id == "abc123"
        assert seen["method"] == "POST"
        assert seen["url"] == "https://dev123.service-now.com/api/now/table/incident"
        assert seen["body"] == {"short_description": "x"}
        expected = base64.b64encode(b"admin:pw").decode()
        assert seen["auth"] == f"Basic {expected}"
        await factory.aclose()

    @pytest.mark.asyncio
    async def test_display_value_sys_id(self):
        def handler(request):
            return httpx.Response(
                201, json={"result": {"sys_id": {"value": "abc", "display_value": "abc"}}}
            )

        session = _factory(handler).create("dev", CREDENTIAL)
        assert await session.create_record("incident", {}) == "abc"

    @pytest.mark.asyncio
    async def test_missing_sys_id_returns_empty(self):
        session = _factory(lambda r: httpx.Response(201, json={"result": {}})).create(
            "dev", CREDENTIAL
        )
        assert await session.create_record("incident", {}) == ""


class TestUpdateRecord:
    @pytest.mark.asyncio
    async def test_patches_record(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(200, json={"result": {"sys_id": "abc", "state": "2"}})

        session = _factory(handler).create("dev", CREDENTIAL)
        record = await session.update_record("incident", "abc", {"state": "2"})
        assert record == {"sys_id": "abc", "state": "2"}
        assert seen == {"method": "PATCH", "path": "/api/now/table/incident/abc"}

    @pytest.mark.asyncio
    async def test_path_segments_escaped(self):
        seen = []

        def handler(request):
            seen.append((request.url.raw_path, request.url.query))
            return httpx.Response(200, json={"result": {}})

        session = _factory(handler).create("dev", CREDENTIAL)
        await session.update_record("incident/../sys_user", "abc?x=1#frag", {})
        assert seen == [
            (b"/api/now/table/incident%2F..%2Fsys_user/abc%3Fx%3D1%23frag", b"")
        ]

    @pytest.mark.asyncio
    async def test_empty_body(self):
        session = _factory(lambda r: httpx.Response(204)).create("dev", CREDENTIAL)
        assert await session.update_record("incident", "abc", {}) == {}


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_error_body_message_and_detail(self):
        def handler(request):
            return httpx.Response(
                400,
                json={"error": {"message": "Invalid table incdent", "detail": None}},
            )

        session = _factory(handler).create("dev", CREDENTIAL)
        with pytest.raises(RemoteOperationError) as exc_info:
            await session.create_record("incdent", {})
        assert exc_info.value.status_code == 400
        assert str(exc_info.value) == "HTTP 400: Invalid table incdent"

    @pytest.mark.asyncio
    async def test_detail_appended(self):
        def handler(request):
            return httpx.Response(
                403, json={"error": {"message": "Operation Failed", "detail": "ACL denied"}}
            )

        session = _factory(handler).create("dev", CREDENTIAL)
        with pytest.raises(RemoteOperationError, match=r"HTTP 403: Operation Failed \(ACL denied\)"):
            await session.update_record("incident", "abc", {})

    @pytest.mark.asyncio
    async def test_non_json_error_uses_reason_phrase(self):
        session = _factory(lambda r: httpx.Response(502, text="<html>")).create("dev", CREDENTIAL)
        with pytest.raises(RemoteOperationError, match="HTTP 502: Bad Gateway"):
            await session.create_record("incident", {})

    @pytest.mark.asyncio
    async def test_401_classified_as_session_expired(self):
        session = _factory(
            lambda r: httpx.Response(401, json={"error": {"message": "User Not Authenticated"}})
        ).create("dev", CREDENTIAL)
        with pytest.raises(RemoteOperationError) as exc_info:
            await session.create_record("incident", {})
        assert ErrorClassifier.with_defaults().classify(exc_info.value) == (
            ErrorClassification.SESSION_EXPIRED
        )

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        session = _factory(handler).create("dev", CREDENTIAL)
        with pytest.raises(RetryableConnectionError, match="ConnectError"):
            await session.create_record("incident", {})


class TestFactory:
    def test_sessions_share_client(self):
        factory = _factory(lambda r: httpx.Response(200))
        a = factory.create("dev", CREDENTIAL)
        b = factory.create("dev", CREDENTIAL)
        assert isinstance(a, TableApiSession)
        assert a is not b
        assert a._client is b._client is factory.client

    @pytest.mark.asyncio
    async def test_session_cookies_never_replayed(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Cookie"))
            return httpx.Response(
                201,
                json={"result": {"sys_id": "abc"}},
                headers={"Set-Cookie": "JSESSIONID=STALE; Path=/"},
            )

        factory = _factory(handler)
        await factory.create("dev", CREDENTIAL).create_record("incident", {})
        ops = Credential("ops", "dev123.service-now.com", "ops_user", "pw2")
        await factory.create("ops", ops).create_record("incident", {})
        await factory.create("dev", CREDENTIAL).create_record("incident", {})

        assert seen == [None, None, None]
        assert len(factory.client.cookies) == 0
        await factory.aclose()

    def test_repr_hides_password(self):
        session = _factory(lambda r: httpx.Response(200)).create("dev", CREDENTIAL)
        assert "pw" not in repr(session)
        assert "dev123.service-now.com" in repr(session)

    @pytest.mark.asyncio
    async def test_aclose_idempotent(self):
        factory = _factory(lambda r: httpx.Response(200))
        await factory.aclose()
        await factory.aclose()
        assert factory.client.is_closed
