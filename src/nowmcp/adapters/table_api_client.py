"""Table API client built on httpx.

One ``httpx.AsyncClient`` is shared by every session the factory
creates; a session only carries the instance base URL and its basic
auth. The shared client never stores cookies, so a platform session
cookie cannot outlive an evicted session or cross to another alias.
Closing the factory closes the shared client.
"""

from __future__ import annotations

import logging
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from nowmcp.domains.connection import Credential
from nowmcp.domains.shared import RemoteOperationError, RetryableConnectionError

logger = logging.getLogger(__name__)

TABLE_API_PATH = "/api/now/table"
_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


class TableApiSession:
    """Authenticated handle for one remote instance."""

    def __init__(self, alias: str, client: httpx.AsyncClient, credential: Credential):
        self.alias = alias
        self.base_url = credential.base_url
        self._client = client
        self._auth = httpx.BasicAuth(credential.username, credential.password)

    def __repr__(self) -> str:
        return f"TableApiSession(alias={self.alias!r}, base_url={self.base_url!r})"

    async def create_record(self, target: str, payload: Dict[str, Any]) -> str:
        """Insert a record into ``target`` and return its sys_id."""
        result = await self._send("POST", _table_path(target), payload)
        sys_id = result.get("sys_id") if isinstance(result, dict) else None
        if isinstance(sys_id, dict):
            sys_id = sys_id.get("value")
        return str(sys_id) if sys_id else ""

    async def update_record(
        self, target: str, record_id: str, payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Patch fields of an existing record and return the updated record."""
        result = await self._send("PATCH", _table_path(target, record_id), payload)
        return result if isinstance(result, dict) else {}

    async def _send(self, method: str, path: str, payload: Dict[str, Any]) -> Any:
        url = self.base_url + path
        try:
            response = await self._client.request(
                method, url, json=payload, auth=self._auth, headers=_HEADERS
            )
        except httpx.TransportError as e:
            raise RetryableConnectionError(
                f"{method} {path} failed: {type(e).__name__}: {e}"
            ) from e

        if response.status_code >= 400:
            message, detail = _error_text(response)
            logger.debug(
                "%s %s returned HTTP %d: %s", method, path, response.status_code, message
            )
            raise RemoteOperationError(
                message, status_code=response.status_code, detail=detail
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteOperationError(
                f"No response body from {method} {path}",
                status_code=response.status_code,
            ) from e
        if not isinstance(body, dict):
            return {}
        return body.get("result", {})


def _table_path(target: str, record_id: Optional[str] = None) -> str:
    # Each segment is escaped whole; '/', '?' and '#' stay inside it
    path = f"{TABLE_API_PATH}/{quote(target, safe='')}"
    if record_id is not None:
        path += f"/{quote(record_id, safe='')}"
    return path


def _cookieless_jar() -> CookieJar:
    """A jar whose policy refuses to store or send any cookie."""
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def _error_text(response: httpx.Response) -> Tuple[str, Optional[str]]:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]
        message = error.get("message") or response.reason_phrase
        return str(message), (str(error["detail"]) if error.get("detail") else None)
    return response.reason_phrase or "Request failed", None


class TableApiSessionFactory:
    """Builds TableApiSession handles over one shared AsyncClient.

    ``transport`` replaces the network transport (tests pass an
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            cookies=_cookieless_jar(),
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def create(self, alias: str, credential: Credential) -> TableApiSession:
        logger.debug("Building Table API session for '%s' at %s", alias, credential.base_url)
        return TableApiSession(alias, self._client, credential)

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()
