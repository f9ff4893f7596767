# fswatch/watchdog/debounce.py

"""
Event coalescing for drained event batches
"""
import time
import logging
from typing import Any, Dict, List, Tuple

from .events import WatchEvent

logger = logging.getLogger(__name__)


class BatchCoalescer:
    """
    Collapses runs of identical events within one drained batch.

    The dispatcher waits a short debounce delay before draining a handle,
    so a burst of writes to one file lands in a single batch. Consecutive
    events with the same (kind, path) are merged into one event whose
    count records how many were seen. Runs are never merged across other
    events, so delivery order is preserved.
    """

    def __init__(self, debounce_delay: float = 0.1, enabled: bool = True):
        """
        Initialize coalescer

        Args:
            debounce_delay: Time in seconds to wait before draining a handle
            enabled: Merge repeated events (False passes batches through)
        """
        self.debounce_delay = debounce_delay
        self.enabled = enabled

        # Statistics
        self.stats = {
            'total_events': 0,
            'coalesced_events': 0,
            'batches': 0,
        }

    def wait(self):
        """Absorb a burst of near-simultaneous events"""
        if self.debounce_delay > 0:
            time.sleep(self.debounce_delay)

    @staticmethod
    def _event_key(event: WatchEvent) -> Tuple[str, str]:
        return event.event_type.value, event.path

    def coalesce(self, events: List[WatchEvent]) -> List[WatchEvent]:
        """
        Merge consecutive repeats in a batch

        Args:
            events: Events in delivery order

        Returns:
            Events in the same order with runs collapsed
        """
        self.stats['batches'] += 1
        self.stats['total_events'] += len(events)

        if not self.enabled:
            return list(events)

        result: List[WatchEvent] = []
        for event in events:
            if result and self._event_key(result[-1]) == self._event_key(event):
                result[-1].count += event.count
                self.stats['coalesced_events'] += 1
                logger.debug(f"Coalesced event {event} (count: {result[-1].count})")
            else:
                result.append(event)
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics"""
        return {
            **self.stats,
            'debounce_delay': self.debounce_delay,
            'enabled': self.enabled,
        }
