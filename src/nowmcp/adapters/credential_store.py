"""File and environment backed credential store.

The credentials file is a JSON object keyed by alias::

    {
        "dev": {
            "instance_url": "https://dev12345.service-now.com",
            "username": "admin",
            "password": "..."
        }
    }

Any field can be supplied or overridden per alias through
``NOWMCP_<ALIAS>_INSTANCE_URL``, ``NOWMCP_<ALIAS>_USERNAME`` and
``NOWMCP_<ALIAS>_PASSWORD``, where ``<ALIAS>`` is the alias upper-cased
with every non-alphanumeric character replaced by ``_``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from nowmcp.domains.connection import Credential
from nowmcp.domains.shared import ConfigurationError

logger = logging.getLogger(__name__)

_FIELDS = ("instance_url", "username", "password")
_FIELD_ALIASES = {"instance": "instance_url", "url": "instance_url", "user": "username"}


def env_prefix(alias: str) -> str:
    """Environment variable prefix for ``alias``."""
    return "NOWMCP_" + re.sub(r"[^A-Za-z0-9]", "_", alias).upper() + "_"


class FileCredentialResolver:
    """Resolves credentials from a JSON file plus environment overrides."""

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.path = Path(path).expanduser() if path is not None else None
        self._environ = environ

    async def resolve(self, alias: str) -> Optional[Credential]:
        """Return the credential stored for ``alias``, or None.

        Raises:
            ConfigurationError: If the file is unreadable or the entry is incomplete
        """
        stored = await asyncio.to_thread(self._load_entry, alias)
        merged: Dict[str, Any] = dict(stored)
        merged.update(self._env_entry(alias))

        if not any(merged.get(name) for name in _FIELDS):
            logger.debug("No credential entry for alias '%s'", alias)
            return None

        try:
            return Credential(
                alias=alias,
                instance_url=str(merged.get("instance_url") or ""),
                username=str(merged.get("username") or ""),
                password=str(merged.get("password") or ""),
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def _load_entry(self, alias: str) -> Dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Could not read credentials file {self.path}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Credentials file {self.path} must contain a JSON object"
            )

        entry = data.get(alias)
        if entry is None:
            return {}
        if not isinstance(entry, dict):
            raise ConfigurationError(
                f"Credentials entry for '{alias}' in {self.path} must be an object"
            )
        normalized: Dict[str, Any] = {}
        for key, value in entry.items():
            normalized[_FIELD_ALIASES.get(key, key)] = value
        return normalized

    def _env_entry(self, alias: str) -> Dict[str, str]:
        environ = self._environ if self._environ is not None else os.environ
        prefix = env_prefix(alias)
        found: Dict[str, str] = {}
        for name in _FIELDS:
            value = environ.get(prefix + name.upper())
            if value:
                found[name] = value
        return found
