# fswatch/watchdog/dispatcher.py

"""
Background dispatch of watch events to listeners
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from fswatch.exceptions import WatchServiceClosedError
from .debounce import BatchCoalescer
from .driver import WatchServiceDriver
from .events import EventType, WatchEvent
from .registry import WatchRegistry
from .watch import Listener, Watch

logger = logging.getLogger(__name__)


class NotificationPool:
    """
    Bounded pool of threads running listener callbacks.

    Submitting never waits for a listener, so a slow callback can't hold
    up the dispatcher.
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self.executor = ThreadPoolExecutor(max_workers=max_workers,
                                           thread_name_prefix="fswatch-notify")
        self.stats = {
            'submitted': 0,
            'completed': 0,
            'errors': 0,
        }
        # Listener threads update the stats concurrently
        self._stats_lock = threading.Lock()

    def submit(self, watch: Watch, event: WatchEvent) -> Optional[Future]:
        """
        Queue a notification for a watch

        Returns:
            Future of the notification, None if nothing was queued
        """
        listener = watch.listener
        if listener is None:
            return None

        try:
            future = self.executor.submit(self._notify, listener, watch, event)
        except RuntimeError as e:
            logger.warning(f"Notification pool is shut down, dropping {event}: {e}")
            return None

        with self._stats_lock:
            self.stats['submitted'] += 1
        return future

    def _notify(self, listener: Listener, watch: Watch, event: WatchEvent):
        try:
            listener(event.path, event.kind, watch, event.is_directory)
        except Exception as e:
            with self._stats_lock:
                self.stats['errors'] += 1
            logger.error(f"Error in listener for {watch.pattern} ({event}): {e}", exc_info=True)
        else:
            with self._stats_lock:
                self.stats['completed'] += 1

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return self.stats.copy()

    def shutdown(self, wait: bool = False):
        self.executor.shutdown(wait=wait)


class EventDispatcher:
    """
    Event loop of one watch service driver.

    Idle -> Waiting (blocked in next_batch) -> Draining -> Waiting ...
    The loop goes back to Idle once none of the driver's handles are left
    in the registry; ensure_running() starts it again.
    """

    def __init__(self, driver: WatchServiceDriver,
                 registry: WatchRegistry,
                 expand: Callable[[Watch, str], Any],
                 pool: NotificationPool,
                 coalescer: Optional[BatchCoalescer] = None,
                 lock: Optional[threading.RLock] = None):
        """
        Initialize event dispatcher

        Args:
            driver: Driver whose handles this loop services
            registry: Shared watch registry
            expand: Extends a recursive watch to a new directory
            pool: Runs listener notifications
            coalescer: Debounce delay and batch coalescing
            lock: Lock serializing registration with handle cleanup
        """
        self.driver = driver
        self.registry = registry
        self.expand = expand
        self.pool = pool
        self.coalescer = coalescer or BatchCoalescer()
        self._lock = lock or threading.RLock()

        self._thread: Optional[threading.Thread] = None
        self.state = 'idle'

        self.stats = {
            'batches': 0,
            'events': 0,
            'notifications': 0,
            'expansions': 0,
            'evicted': 0,
            'dropped_handles': 0,
            'errors': 0,
        }

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def ensure_running(self) -> bool:
        """
        Start the loop unless it is already running

        Returns:
            True if a new loop thread was started
        """
        with self._lock:
            if self._thread is not None or self.driver.closed:
                return False
            self._thread = threading.Thread(
                target=self._run,
                name=f"fswatch-dispatcher-{self.driver.device}",
                daemon=True,
            )
            self._thread.start()
            logger.debug(f"Started dispatcher for {self.driver.device}")
            return True

    def join(self, timeout: Optional[float] = None):
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _owns(self, handle: Any) -> bool:
        return getattr(handle, 'driver', None) is self.driver

    def _run(self):
        try:
            while True:
                self.state = 'waiting'
                handle = self.driver.next_batch()

                self.state = 'draining'
                if handle is not None:
                    try:
                        self.process(handle)
                    except Exception as e:
                        self.stats['errors'] += 1
                        logger.error(f"Event process error on {handle}: {e}", exc_info=True)

                with self._lock:
                    if self.registry.is_empty(self._owns):
                        logger.debug(f"No watches left on {self.driver.device}, dispatcher idle")
                        self._thread = None
                        return
        except WatchServiceClosedError:
            logger.debug(f"Watch service for {self.driver.device} closed, dispatcher stopped")
        except Exception as e:
            # An error from the blocking wait stops the loop
            logger.error(f"Dispatcher for {self.driver.device} stopped: {e}")
        finally:
            with self._lock:
                if self._thread is threading.current_thread():
                    self._thread = None
            self.state = 'idle'

    def process(self, handle: Any):
        """Drain one ready handle, dispatch its events and re-arm it"""
        self.coalescer.wait()
        events = self.coalescer.coalesce(self.driver.drain(handle))
        self.stats['batches'] += 1

        for event in events:
            self.stats['events'] += 1
            try:
                if event.is_directory and event.event_type is EventType.DELETE:
                    self._retire(event.path)
                self._dispatch(handle, event)
            except Exception as e:
                self.stats['errors'] += 1
                logger.error(f"Error dispatching {event}: {e}", exc_info=True)

        with self._lock:
            if not self.driver.reset(handle):
                logger.debug(f"Dropping unusable handle {handle}")
                self.registry.drop_handle(handle)
                self.driver.cancel(handle)
                self.stats['dropped_handles'] += 1
            elif self.registry.prune(handle):
                self.driver.cancel(handle)

    def _retire(self, directory: str):
        """
        Forget the subscriptions of a deleted directory and its subdirectories

        Their observer watches are released right away, so a directory
        created again at the same path gets subscribed afresh.
        """
        with self._lock:
            for child in self.driver.handles_within(directory):
                logger.debug(f"Directory {directory} deleted, dropping {child}")
                self.registry.drop_handle(child)
                self.driver.cancel(child)
                self.stats['dropped_handles'] += 1

    def _dispatch(self, handle: Any, event: WatchEvent):
        for watch in self.registry.watches(handle):
            if not watch.is_valid():
                logger.debug(f"Deleting expired file watch at '{handle.path}': {watch.pattern}")
                self.registry.discard(handle, watch)
                self.stats['evicted'] += 1
                continue

            try:
                if (event.is_directory and event.event_type is EventType.CREATE
                        and watch.is_recursive()):
                    # New directory in a recursive scope, cover it and its subdirs
                    self.expand(watch, event.path)
                    self.stats['expansions'] += 1
                elif watch.matches(event.path):
                    logger.debug(f"{event} -> {watch.pattern}")
                    if self.pool.submit(watch, event) is not None:
                        self.stats['notifications'] += 1
            except Exception as e:
                self.stats['errors'] += 1
                logger.error(f"Error handling {event} for {watch.pattern}: {e}", exc_info=True)

    def get_status(self) -> Dict[str, Any]:
        return {
            'device': self.driver.device,
            'state': self.state,
            'running': self.is_running(),
            'stats': self.stats.copy(),
            'coalescer': self.coalescer.get_stats(),
        }
