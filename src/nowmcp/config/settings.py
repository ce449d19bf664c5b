"""Connection settings for the now-mcp server."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from nowmcp.domains.connection import SessionTtl

_DEFAULT_CREDENTIALS_FILE = Path("~/.nowmcp/credentials.json")
_DEFAULT_REQUEST_TIMEOUT = 30.0
_TRUTHY = {"1", "true", "yes", "on"}
_ENV_LOADED = False


@dataclass(frozen=True)
class ConnectionSettings:
    """Holds runtime settings for sessions and the remote client."""

    default_alias: Optional[str] = None
    session_ttl_seconds: float = SessionTtl.DEFAULT_SECONDS
    credentials_file: Path = _DEFAULT_CREDENTIALS_FILE
    request_timeout_seconds: float = _DEFAULT_REQUEST_TIMEOUT
    single_flight: bool = False

    def __post_init__(self) -> None:
        if self.session_ttl_seconds <= 0:
            raise ValueError(
                f"session_ttl_seconds must be positive, got {self.session_ttl_seconds}"
            )
        if self.request_timeout_seconds <= 0:
            raise ValueError(
                f"request_timeout_seconds must be positive, got {self.request_timeout_seconds}"
            )

    @property
    def session_ttl(self) -> SessionTtl:
        return SessionTtl(self.session_ttl_seconds)

    def with_overrides(self, **overrides: Any) -> "ConnectionSettings":
        """Return a copy with the non-None overrides applied."""

        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        return replace(self, **values)


def load_connection_settings(**overrides: Any) -> ConnectionSettings:
    """Load settings from environment variables and keyword overrides."""

    _ensure_env_loaded()

    alias = (
        os.getenv("NOWMCP_AUTH_ALIAS", "").strip()
        or os.getenv("SN_AUTH_ALIAS", "").strip()
        or None
    )
    credentials_file = os.getenv("NOWMCP_CREDENTIALS_FILE", "").strip()

    settings = ConnectionSettings(
        default_alias=alias,
        session_ttl_seconds=_env_float(
            "NOWMCP_SESSION_TTL_SECONDS", SessionTtl.DEFAULT_SECONDS
        ),
        credentials_file=(
            Path(credentials_file) if credentials_file else _DEFAULT_CREDENTIALS_FILE
        ).expanduser(),
        request_timeout_seconds=_env_float(
            "NOWMCP_REQUEST_TIMEOUT_SECONDS", _DEFAULT_REQUEST_TIMEOUT
        ),
        single_flight=os.getenv("NOWMCP_SINGLE_FLIGHT", "").strip().lower() in _TRUTHY,
    )
    return settings.with_overrides(**overrides)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True
    dotenv_path = Path.cwd() / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path)
    else:
        load_dotenv()
