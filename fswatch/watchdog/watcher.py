# fswatch/watchdog/watcher.py

"""
File watch service: the add / remove entry points
"""
import logging
import threading
from typing import Any, Callable, Dict, Hashable, Optional

from fswatch.exceptions import InvalidPatternError
from fswatch.utils.config import WatcherConfig
from .debounce import BatchCoalescer
from .dispatcher import EventDispatcher, NotificationPool
from .driver import WatchServiceDriver
from .expander import RecursiveExpander
from .patterns import base_directory
from .registry import WatchRegistry
from .tree import DirectoryTree, LocalDirectoryTree
from .watch import Watch

logger = logging.getLogger(__name__)


class FileWatcher:
    """
    Translates directory change notifications into per-file callbacks.

    Owns the watch registry, one driver and dispatcher thread per
    filesystem, and the notification pool. Construct one and pass it to
    whatever needs to register watches.

    Example:
        watcher = FileWatcher()
        watcher.add(Watch("conf/*.yaml", on_change))
        ...
        watcher.close()

    Registration never raises: failures are logged and the watch is
    simply not active.
    """

    def __init__(self, config: Optional[WatcherConfig] = None,
                 tree: Optional[DirectoryTree] = None,
                 driver_factory: Optional[Callable[[Hashable], Any]] = None):
        """
        Initialize file watcher

        Args:
            config: Watch service configuration
            tree: Directory tree used for recursive expansion
            driver_factory: Creates the driver for a filesystem id
        """
        self.config = config or WatcherConfig()
        self.tree = tree or LocalDirectoryTree(follow_symlinks=self.config.follow_symlinks)
        self.driver_factory = driver_factory or self._create_driver

        self.registry = WatchRegistry()
        self.pool = NotificationPool(max_workers=self.config.max_workers)
        self.expander = RecursiveExpander(self.tree, self._register_at)

        # Drivers and dispatchers by filesystem; None marks a failed driver
        self._drivers: Dict[Hashable, Optional[Any]] = {}
        self._dispatchers: Dict[Hashable, EventDispatcher] = {}

        self._lock = threading.RLock()
        self._closed = False

        self.stats = {
            'added': 0,
            'duplicates': 0,
            'removed': 0,
            'failed': 0,
        }

    def _create_driver(self, device: Hashable) -> WatchServiceDriver:
        return WatchServiceDriver(
            device=device,
            use_polling=self.config.use_polling,
            poll_interval=self.config.poll_interval,
            follow_symlinks=self.config.follow_symlinks,
        )

    def add(self, watch: Watch) -> bool:
        """
        Add a file watchpoint

        Duplicates of an already registered watch are ignored.

        Args:
            watch: The watch object

        Returns:
            True if the watch was registered
        """
        if self._closed:
            logger.warning(f"Watch service is closed, ignoring {watch.pattern}")
            return False

        try:
            directory = base_directory(watch.pattern)
            watch.init(directory)

            with self._lock:
                if self.registry.contains(watch):
                    self.stats['duplicates'] += 1
                    logger.debug(f"Ignoring duplicate watch: {watch.pattern}")
                    return False

                if watch.is_recursive():
                    registered = self.expander.expand(watch, directory) > 0
                else:
                    registered = self._register_at(watch, directory)

            if registered:
                self.stats['added'] += 1
            else:
                self.stats['failed'] += 1
            return registered

        except InvalidPatternError as e:
            self.stats['failed'] += 1
            logger.error(f"Register error: {e}")
        except Exception as e:
            self.stats['failed'] += 1
            logger.error(f"Register error for {watch.pattern}: {e}", exc_info=True)
        return False

    def remove(self, watch: Watch) -> bool:
        """
        Remove a file watchpoint

        Notifications already handed to the pool still run.

        Args:
            watch: The watch object (or an equal one)

        Returns:
            True if anything was removed
        """
        try:
            with self._lock:
                handles = self.registry.handles_for(watch)
                removed = self.registry.remove_all(watch)

                for handle in handles:
                    if self.registry.prune(handle):
                        handle.driver.cancel(handle)
                        self._wakeup(handle.driver)

            if removed:
                self.stats['removed'] += 1
                logger.debug(f"Removed file watch: {watch.pattern} ({removed} directories)")
            return removed > 0

        except Exception as e:
            logger.error(f"Remove error for {watch.pattern}: {e}", exc_info=True)
            return False

    def _wakeup(self, driver: Any):
        # Let an idle-bound dispatcher notice it has nothing left to watch
        if self.registry.is_empty(lambda handle: getattr(handle, 'driver', None) is driver):
            driver.wakeup()

    def expand(self, watch: Watch, directory: str) -> int:
        """Extend a recursive watch to directory and everything below it"""
        return self.expander.expand(watch, directory)

    def _register_at(self, watch: Watch, directory: str) -> bool:
        """Register a watch at a single directory"""
        with self._lock:
            if self._closed:
                return False

            driver = self._driver_for(directory)
            if driver is None:
                logger.debug(f"No watch service for '{directory}', not watching {watch.pattern}")
                return False

            handle = driver.register(directory)
            if not any(existing is watch for existing in self.registry.watches(handle)):
                self.registry.add(handle, watch)
                logger.debug(f"Added file watch at '{directory}': {watch.pattern}")

            self._dispatchers[driver.device].ensure_running()
            return True

    def _driver_for(self, directory: str) -> Optional[Any]:
        """Get the driver for a directory's filesystem, creating it on first use"""
        device = self.tree.filesystem_id(directory)
        if device in self._drivers:
            return self._drivers[device]

        try:
            driver = self.driver_factory(device)
        except Exception as e:
            logger.error(f"Error creating watch service for filesystem {device}: {e}")
            self._drivers[device] = None
            return None

        self._drivers[device] = driver
        self._dispatchers[device] = EventDispatcher(
            driver=driver,
            registry=self.registry,
            expand=self.expand,
            pool=self.pool,
            coalescer=BatchCoalescer(
                debounce_delay=self.config.debounce_delay,
                enabled=self.config.coalesce_events,
            ),
            lock=self._lock,
        )
        logger.info(f"Started watch service for filesystem {device}")
        return driver

    def close(self, timeout: float = 5.0):
        """Stop all drivers and dispatchers"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            drivers = [driver for driver in self._drivers.values() if driver is not None]
            dispatchers = list(self._dispatchers.values())
            self.registry.clear()

        for driver in drivers:
            try:
                driver.close()
            except Exception as e:
                logger.error(f"Error closing watch service {driver.device}: {e}")

        for dispatcher in dispatchers:
            dispatcher.join(timeout)

        self.pool.shutdown(wait=False)
        logger.info("File watcher closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def get_status(self) -> Dict[str, Any]:
        """Get watcher status"""
        with self._lock:
            return {
                'closed': self._closed,
                'handles': len(self.registry),
                'watches': self.registry.watch_count(),
                'filesystems': {
                    str(device): (self._dispatchers[device].get_status()
                                  if driver is not None else {'error': 'watch service unavailable'})
                    for device, driver in self._drivers.items()
                },
                'notifications': self.pool.get_stats(),
                'expander': self.expander.stats.copy(),
                'stats': self.stats.copy(),
            }
