"""Connection Domain Entities.

A SessionEntry is identified by its alias. Entries are never mutated
after creation: a refresh replaces the whole entry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class Credential:
    """Stored login for one remote instance.

    Attributes:
        alias: The alias this credential was stored under
        instance_url: Base URL of the remote instance
        username: Login user name
        password: Login secret (excluded from repr)
    """
    alias: str
    instance_url: str
    username: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.instance_url:
            raise ValueError(f"Credential for '{self.alias}' has no instance_url")
        if not self.username:
            raise ValueError(f"Credential for '{self.alias}' has no username")

    @property
    def base_url(self) -> str:
        """Instance URL with a scheme and without a trailing slash."""
        url = self.instance_url.strip().rstrip("/")
        if "://" not in url:
            url = f"https://{url}"
        return url


@dataclass(frozen=True)
class SessionEntry:
    """One live authenticated connection to one named remote target.

    Attributes:
        alias: Cache key; at most one entry per alias exists in the cache
        session: Opaque session handle built from a credential
        created_at: Monotonic timestamp used for TTL computation
    """
    __test__ = False  # Suppress pytest collection

    alias: str
    session: Any
    created_at: float

    def age(self, now: float) -> float:
        """Seconds elapsed since the entry was created."""
        return now - self.created_at

    def is_live(self, now: float, ttl_seconds: float) -> bool:
        """True while the entry is younger than the TTL."""
        return self.age(now) < ttl_seconds

    def to_dict(self, now: float) -> Dict[str, Any]:
        """Serialize for MCP responses (the session handle is never exposed)."""
        return {
            "alias": self.alias,
            "age_seconds": round(self.age(now), 1),
        }
