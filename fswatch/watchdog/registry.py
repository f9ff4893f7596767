# fswatch/watchdog/registry.py

"""
Registry of watchpoints by directory handle
"""
import logging
import threading
from typing import Callable, Dict, Hashable, List, Optional

from .watch import Watch

logger = logging.getLogger(__name__)


class WatchRegistry:
    """
    Map of watch handle -> ordered list of watches interested in it.

    All access goes through one lock; readers get snapshot copies so the
    dispatcher can iterate while other threads add and remove watches.
    """

    def __init__(self):
        self._entries: Dict[Hashable, List[Watch]] = {}
        self._lock = threading.RLock()

    def add(self, handle: Hashable, watch: Watch):
        """Append a watch to the handle's list, creating the list if needed"""
        with self._lock:
            self._entries.setdefault(handle, []).append(watch)

    def contains(self, watch: Watch) -> bool:
        with self._lock:
            return any(watch in watches for watches in self._entries.values())

    def remove(self, watch: Watch) -> bool:
        """
        Remove the first occurrence of a watch

        Returns:
            True if something was removed
        """
        with self._lock:
            for watches in self._entries.values():
                if watch in watches:
                    watches.remove(watch)
                    return True
            return False

    def remove_all(self, watch: Watch) -> int:
        """
        Remove a watch from every handle it is registered under

        Returns:
            Number of entries removed
        """
        removed = 0
        while self.remove(watch):
            removed += 1
        return removed

    def discard(self, handle: Hashable, watch: Watch) -> bool:
        """Remove a specific watch object from one handle's list"""
        with self._lock:
            watches = self._entries.get(handle)
            if not watches:
                return False
            for i, candidate in enumerate(watches):
                if candidate is watch:
                    del watches[i]
                    return True
            return False

    def drop_handle(self, handle: Hashable) -> List[Watch]:
        """Remove a whole entry, returning the watches it held"""
        with self._lock:
            return self._entries.pop(handle, [])

    def prune(self, handle: Hashable) -> bool:
        """Drop the handle's entry if no watches are left in it"""
        with self._lock:
            if handle in self._entries and not self._entries[handle]:
                del self._entries[handle]
                return True
            return False

    def watches(self, handle: Hashable) -> List[Watch]:
        """Snapshot of the watches registered under a handle"""
        with self._lock:
            return list(self._entries.get(handle, ()))

    def handles(self, predicate: Optional[Callable[[Hashable], bool]] = None) -> List[Hashable]:
        with self._lock:
            if predicate is None:
                return list(self._entries)
            return [handle for handle in self._entries if predicate(handle)]

    def handles_for(self, watch: Watch) -> List[Hashable]:
        with self._lock:
            return [handle for handle, watches in self._entries.items() if watch in watches]

    def is_empty(self, predicate: Optional[Callable[[Hashable], bool]] = None) -> bool:
        """
        Check if no entries are left

        Args:
            predicate: Only consider handles it accepts
        """
        with self._lock:
            if predicate is None:
                return not self._entries
            return not any(predicate(handle) for handle in self._entries)

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def watch_count(self) -> int:
        with self._lock:
            return sum(len(watches) for watches in self._entries.values())

    def clear(self):
        with self._lock:
            self._entries.clear()
