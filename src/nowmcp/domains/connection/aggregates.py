"""Connection Domain Aggregate Root.

The SessionCache is the aggregate root for the Connection bounded
context. It owns the alias -> SessionEntry map, TTL expiry and
explicit eviction. It never talks to the credential store or the
remote platform; the ConnectionManager service does that.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from nowmcp.domains.shared.kernel import ConfigurationError

from .entities import SessionEntry
from .value_objects import SessionTtl


@dataclass
class SessionCache:
    """Aggregate root: per-alias cache of live sessions.

    Invariants:
        - At most one SessionEntry per alias.
        - Entries are immutable; a refresh is a delete+insert performed
          under the lock, so readers never observe a partial write.
        - An entry older than the TTL is never returned.

    Concurrency:
        Every read and write of the map takes ``_lock``. The lock is never
        held across an ``await``, so it is safe from both coroutines and
        worker threads.

    Attributes:
        ttl: Maximum session age
        default_alias: Alias used when callers pass none
        clock: Monotonic time source (injectable for tests)
    """
    ttl: SessionTtl = field(default_factory=SessionTtl.default)
    default_alias: Optional[str] = None
    clock: Callable[[], float] = time.monotonic
    _entries: Dict[str, SessionEntry] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def resolve_alias(self, alias: Optional[str] = None) -> str:
        """Return ``alias`` or the default alias.

        Raises:
            ConfigurationError: If neither is set
        """
        resolved = (alias or "").strip() or (self.default_alias or "").strip()
        if not resolved:
            raise ConfigurationError()
        return resolved

    def get_live(self, alias: str) -> Optional[SessionEntry]:
        """Return the live entry for ``alias``.

        An expired entry is removed and None is returned.
        """
        with self._lock:
            entry = self._entries.get(alias)
            if entry is None:
                return None
            if entry.is_live(self.clock(), self.ttl.seconds):
                return entry
            del self._entries[alias]
            return None

    def evict_if_expired(self, alias: str) -> bool:
        """Remove the entry for ``alias`` if it is past its TTL.

        Returns True if an expired entry was removed.
        """
        with self._lock:
            entry = self._entries.get(alias)
            if entry is None or entry.is_live(self.clock(), self.ttl.seconds):
                return False
            del self._entries[alias]
            return True

    def store(self, alias: str, session: Any) -> SessionEntry:
        """Replace any entry for ``alias`` with a fresh one stamped now."""
        with self._lock:
            entry = SessionEntry(alias=alias, session=session, created_at=self.clock())
            self._entries.pop(alias, None)
            self._entries[alias] = entry
            return entry

    def evict(self, alias: str) -> bool:
        """Remove the entry for ``alias``. Returns True if one was present."""
        with self._lock:
            return self._entries.pop(alias, None) is not None

    def clear(self) -> int:
        """Remove all entries. Returns how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    @property
    def aliases(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)

    def __contains__(self, alias: object) -> bool:
        with self._lock:
            return alias in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def describe(self) -> List[Dict[str, Any]]:
        """Serialize the cached entries for MCP responses."""
        with self._lock:
            now = self.clock()
            return [
                entry.to_dict(now)
                for _, entry in sorted(self._entries.items())
            ]
