# fswatch/watchdog/driver.py

"""
Watch service driver: the native change-notification layer

One driver exists per filesystem. It subscribes single directories
(non-recursively) with a watchdog observer, collects their events per
handle and hands ready handles to the dispatcher one at a time.
"""
import os
import queue
import logging
import threading
from typing import Any, Dict, Hashable, List, Optional, Tuple

from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from fswatch.exceptions import WatchServiceClosedError
from .events import WatchEvent
from .handlers import DirectoryEventHandler, directory_identity
from .tree import is_within

logger = logging.getLogger(__name__)

_CLOSED = object()
_WAKEUP = object()


class WatchHandle:
    """
    Subscription of one directory with a driver.

    Collects pending events and tracks whether the handle is queued as
    ready. A handle stays signalled from the moment it is queued until it
    is reset; events arriving in between wait for the reset.
    """

    def __init__(self, path: str, abs_path: str, driver: 'WatchServiceDriver',
                 identity: Optional[Tuple[int, int]] = None):
        self.path = path
        self.abs_path = abs_path
        self.identity = identity
        self.driver = driver
        self.observed_watch = None
        self.handler: Optional[DirectoryEventHandler] = None

        self._pending: List[WatchEvent] = []
        self._signalled = False
        self._valid = True
        self._lock = threading.Lock()

    @property
    def device(self) -> Hashable:
        return self.driver.device

    def is_valid(self) -> bool:
        return self._valid

    def __repr__(self):
        return f"WatchHandle({self.path!r})"


class WatchServiceDriver:
    """
    Owner of the blocking notification stream for one filesystem
    """

    def __init__(self, device: Hashable = None,
                 use_polling: bool = False,
                 poll_interval: float = 1.0,
                 observer: Any = None,
                 follow_symlinks: bool = True):
        """
        Initialize driver

        Args:
            device: Identifier of the filesystem served by this driver
            use_polling: Use polling instead of OS events
            poll_interval: Polling interval in seconds
            observer: Pre-built watchdog observer (overrides the two above)
            follow_symlinks: Report new symlinks to directories as directories
        """
        self.device = device
        self.use_polling = use_polling
        self.poll_interval = poll_interval
        self.follow_symlinks = follow_symlinks

        if observer is not None:
            self.observer = observer
        elif use_polling:
            self.observer = PollingObserver(timeout=poll_interval)
            logger.debug(f"Using polling observer (interval: {poll_interval}s)")
        else:
            self.observer = Observer()
            logger.debug("Using OS event observer")

        # Handles by directory, in the shape they were registered with
        self._handles: Dict[str, WatchHandle] = {}
        self._ready: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.RLock()
        self._started = False
        self._closed = False

        self.stats = {
            'registered': 0,
            'reused': 0,
            'replaced': 0,
            'events': 0,
            'batches': 0,
        }

    def register(self, directory: str) -> WatchHandle:
        """
        Subscribe a directory for create, modify and delete notifications

        A directory that is already subscribed returns its existing handle,
        unless that handle went stale (its directory was deleted or replaced),
        in which case the old subscription is torn down and a fresh one made.

        Args:
            directory: Directory, in the shape events should be reported in

        Returns:
            Handle for the directory

        Raises:
            WatchServiceClosedError: if the driver was closed
            OSError: if the directory can't be subscribed
        """
        with self._lock:
            if self._closed:
                raise WatchServiceClosedError(f"Watch service for {self.device} is closed")

            abs_path = os.path.abspath(directory or os.curdir)
            identity = directory_identity(abs_path) if os.path.isdir(abs_path) else None
            if identity is None:
                raise NotADirectoryError(f"Not a directory: {abs_path}")

            stale = next((h for h in self._handles.values()
                          if h.abs_path == abs_path and (not h.is_valid() or h.identity != identity)),
                         None)
            if stale is not None:
                self._retire_stale(stale)

            handle = self._handles.get(directory)
            if handle is not None:
                self.stats['reused'] += 1
                return handle

            handle = WatchHandle(directory, abs_path, self, identity)
            handle.handler = DirectoryEventHandler(
                directory=abs_path,
                display_path=directory,
                sink=lambda event, h=handle: self._enqueue(h, event),
                on_gone=lambda h=handle: self._invalidate(h),
                identity=identity,
                follow_symlinks=self.follow_symlinks,
            )

            if not self._started:
                self.observer.start()
                self._started = True

            handle.observed_watch = self.observer.schedule(handle.handler, abs_path, recursive=False)
            self._handles[directory] = handle
            self.stats['registered'] += 1

            logger.debug(f"Subscribed directory: {abs_path}")
            return handle

    def _retire_stale(self, stale: WatchHandle):
        """
        Tear down the subscription of a directory that is gone or was replaced

        Every handle on the same directory shares the observer watch, and
        the observer keeps its emitter for a path until it is unscheduled,
        so they all go. The handles are signalled so the dispatcher drops
        them from the registry.
        """
        logger.debug(f"Replacing stale subscription: {stale.abs_path}")
        affected = [h for h in self._handles.values() if h.abs_path == stale.abs_path]
        if stale not in affected:
            affected.append(stale)

        observed = next((h.observed_watch for h in affected if h.observed_watch is not None), None)
        if observed is not None:
            try:
                self.observer.unschedule(observed)
            except (KeyError, ValueError) as e:
                logger.debug(f"Directory already unsubscribed {stale.abs_path}: {e}")

        for h in affected:
            if self._handles.get(h.path) is h:
                del self._handles[h.path]
            h.observed_watch = None
            self._invalidate(h)
        self.stats['replaced'] += 1

    def _enqueue(self, handle: WatchHandle, event: WatchEvent):
        """Record an event for a handle, queueing the handle if it isn't yet"""
        with handle._lock:
            if not handle._valid:
                return
            handle._pending.append(event)
            self.stats['events'] += 1
            if handle._signalled:
                return
            handle._signalled = True
        self._ready.put(handle)

    def _invalidate(self, handle: WatchHandle):
        with handle._lock:
            handle._valid = False
            if handle._signalled:
                return
            handle._signalled = True
        self._ready.put(handle)

    def next_batch(self) -> Optional[WatchHandle]:
        """
        Block until a handle has events pending

        Returns:
            The ready handle, or None when woken up by wakeup()

        Raises:
            WatchServiceClosedError: once the driver is closed
        """
        handle = self._ready.get()
        if handle is _CLOSED:
            # Wake any other waiter too
            self._ready.put(_CLOSED)
            raise WatchServiceClosedError(f"Watch service for {self.device} is closed")
        if handle is _WAKEUP:
            return None
        self.stats['batches'] += 1
        return handle

    def wakeup(self):
        """Make a blocked next_batch() return None"""
        self._ready.put(_WAKEUP)

    def drain(self, handle: WatchHandle) -> List[WatchEvent]:
        """Take all pending events of a handle, in delivery order"""
        with handle._lock:
            events = handle._pending
            handle._pending = []
        return events

    def reset(self, handle: WatchHandle) -> bool:
        """
        Re-arm a handle for further notifications

        Returns:
            False if the handle is no longer usable
        """
        with handle._lock:
            if handle._valid and not self._is_accessible(handle.abs_path):
                handle._valid = False
            if not handle._valid:
                return False

            if not handle._pending:
                handle._signalled = False
                return True

        # Events arrived after drain, the handle is ready again
        self._ready.put(handle)
        return True

    @staticmethod
    def _is_accessible(path: str) -> bool:
        return os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK)

    def cancel(self, handle: WatchHandle):
        """Unsubscribe a handle's directory"""
        with self._lock:
            with handle._lock:
                handle._valid = False
                handle._pending = []

            if self._handles.get(handle.path) is handle:
                del self._handles[handle.path]

            if handle.observed_watch is None:
                return

            shared = any(other.abs_path == handle.abs_path for other in self._handles.values())
            try:
                if shared:
                    self.observer.remove_handler_for_watch(handle.handler, handle.observed_watch)
                else:
                    self.observer.unschedule(handle.observed_watch)
            except (KeyError, ValueError) as e:
                logger.debug(f"Directory already unsubscribed {handle.abs_path}: {e}")
            handle.observed_watch = None

            logger.debug(f"Unsubscribed directory: {handle.abs_path}")

    def close(self):
        """Stop the observer and wake up anything blocked in next_batch()"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._handles.clear()

            if self._started:
                try:
                    self.observer.stop()
                    self.observer.join(timeout=10)
                except Exception as e:
                    logger.error(f"Error stopping observer for {self.device}: {e}")

        self._ready.put(_CLOSED)
        logger.debug(f"Closed watch service for {self.device}")

    @property
    def closed(self) -> bool:
        return self._closed

    def handles_within(self, directory: str) -> List[WatchHandle]:
        """Handles of a directory and of everything subscribed below it"""
        with self._lock:
            return [handle for path, handle in self._handles.items()
                    if path == directory or is_within(path, directory)]

    def handle_count(self) -> int:
        with self._lock:
            return len(self._handles)

    def get_status(self) -> Dict[str, Any]:
        return {
            'device': self.device,
            'use_polling': self.use_polling,
            'poll_interval': self.poll_interval if self.use_polling else None,
            'closed': self._closed,
            'handles': self.handle_count(),
            'stats': self.stats.copy(),
        }
