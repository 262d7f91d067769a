# Memory Package
from memory.store import SnapshotStore, InMemorySnapshotStore
from memory.redirect import RedirectMemory

__all__ = ["SnapshotStore", "InMemorySnapshotStore", "RedirectMemory"]
