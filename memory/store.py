"""
Snapshot Store

Server-side half of the redirect handoff: pending snapshot lists keyed by
the one-shot cookie value.

DESIGN RULES:
- No long-term persistence
- pop() reads and deletes in one critical section (consume-once)
- Entries expire on their own if never collected
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from threading import Lock
from typing import Dict, List, Optional, Tuple

from schemas.snapshot import DiagnosticSnapshot


class SnapshotStore(ABC):
    """
    Abstract base for the pending-snapshot store.

    Implementations:
    - InMemorySnapshotStore (default, single process)
    """

    @abstractmethod
    def put(self, key: str, snapshots: List[DiagnosticSnapshot]) -> None:
        """Store (replace) the list pending under `key`."""

    @abstractmethod
    def pop(self, key: str) -> List[DiagnosticSnapshot]:
        """Return and delete the list under `key`; empty if absent."""


class InMemorySnapshotStore(SnapshotStore):
    """
    In-memory pending-snapshot store.

    Thread-safe. Entries not collected within the TTL are dropped.
    """

    DEFAULT_TTL_SECONDS = 300

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        """
        Initialize the store.

        Args:
            ttl_seconds: Lifetime of an uncollected entry
        """
        self._entries: Dict[str, Tuple[datetime, List[dict]]] = {}
        self._ttl = timedelta(seconds=ttl_seconds)
        self._lock = Lock()

    def put(self, key: str, snapshots: List[DiagnosticSnapshot]) -> None:
        payload = [s.model_dump(mode="json") for s in snapshots]
        with self._lock:
            self._cleanup_expired()
            self._entries[key] = (datetime.now(), payload)

    def pop(self, key: str) -> List[DiagnosticSnapshot]:
        with self._lock:
            self._cleanup_expired()
            entry: Optional[Tuple[datetime, List[dict]]] = self._entries.pop(key, None)
        if entry is None:
            return []
        return [DiagnosticSnapshot.model_validate(item) for item in entry[1]]

    def __len__(self) -> int:
        with self._lock:
            self._cleanup_expired()
            return len(self._entries)

    def _cleanup_expired(self) -> None:
        """Remove expired entries (caller holds the lock)."""
        cutoff = datetime.now() - self._ttl
        expired = [key for key, (stored_at, _) in self._entries.items() if stored_at < cutoff]
        for key in expired:
            del self._entries[key]
