"""Shared test fixtures for fswatch."""

from __future__ import annotations

import queue
import threading
import time
from typing import Callable, Dict, List, Optional, Set

import pytest

from fswatch.exceptions import WatchServiceClosedError
from fswatch.utils.config import WatcherConfig
from fswatch.watchdog.events import EventType, WatchEvent
from fswatch.watchdog.tree import DirectoryTree, is_within
from fswatch.watchdog.watcher import FileWatcher

_CLOSED = object()
_WAKEUP = object()


class FakeHandle:
    """In-memory stand-in for a subscribed directory."""

    def __init__(self, path: str, driver: "FakeDriver") -> None:
        self.path = path
        self.driver = driver
        self.pending: List[WatchEvent] = []
        self.signalled = False
        self.valid = True

    def __repr__(self) -> str:
        return f"FakeHandle({self.path!r})"


class FakeDriver:
    """Driver with the WatchServiceDriver surface, fed by emit()."""

    def __init__(self, device: str = "fake", tree: Optional["FakeTree"] = None) -> None:
        self.device = device
        self.tree = tree
        self.handles: Dict[str, FakeHandle] = {}
        self.cancelled: List[FakeHandle] = []
        self.unregisterable: Set[str] = set()
        self.closed = False
        self._ready: queue.Queue = queue.Queue()
        self._lock = threading.Lock()

    def register(self, directory: str) -> FakeHandle:
        if self.closed:
            raise WatchServiceClosedError("closed")
        if directory in self.unregisterable:
            raise PermissionError(f"Permission denied: {directory}")
        if self.tree is not None and not self.tree.is_dir(directory):
            raise NotADirectoryError(directory)
        with self._lock:
            handle = self.handles.get(directory)
            if handle is None or not handle.valid:
                handle = FakeHandle(directory, self)
                self.handles[directory] = handle
            return handle

    def emit(self, directory: str, event_type: EventType, name: str,
             is_directory: bool = False) -> None:
        """Deliver a native event for an entry of a subscribed directory."""
        path = f"{directory}/{name}" if directory else name
        if self.tree is not None and is_directory:
            if event_type is EventType.CREATE:
                self.tree.dirs.add(path)
            elif event_type is EventType.DELETE:
                self.tree.dirs = {d for d in self.tree.dirs if d != path and not is_within(d, path)}
        with self._lock:
            handle = self.handles[directory]
            if not handle.valid:
                return
            handle.pending.append(WatchEvent(event_type, path, is_directory))
            if handle.signalled:
                return
            handle.signalled = True
        self._ready.put(handle)

    def vanish(self, directory: str) -> None:
        """Simulate the subscribed directory being deleted."""
        with self._lock:
            handle = self.handles[directory]
            handle.valid = False
            if handle.signalled:
                return
            handle.signalled = True
        self._ready.put(handle)

    def next_batch(self) -> Optional[FakeHandle]:
        handle = self._ready.get()
        if handle is _CLOSED:
            self._ready.put(_CLOSED)
            raise WatchServiceClosedError("closed")
        if handle is _WAKEUP:
            return None
        return handle

    def wakeup(self) -> None:
        self._ready.put(_WAKEUP)

    def drain(self, handle: FakeHandle) -> List[WatchEvent]:
        with self._lock:
            events, handle.pending = handle.pending, []
        return events

    def reset(self, handle: FakeHandle) -> bool:
        with self._lock:
            if not handle.valid:
                return False
            if not handle.pending:
                handle.signalled = False
                return True
        self._ready.put(handle)
        return True

    def cancel(self, handle: FakeHandle) -> None:
        with self._lock:
            handle.valid = False
            if self.handles.get(handle.path) is handle:
                del self.handles[handle.path]
            self.cancelled.append(handle)

    def handles_within(self, directory: str) -> List[FakeHandle]:
        with self._lock:
            return [handle for path, handle in self.handles.items()
                    if path == directory or is_within(path, directory)]

    def close(self) -> None:
        self.closed = True
        self._ready.put(_CLOSED)


class FakeTree(DirectoryTree):
    """Directory tree held in a set of '/'-separated paths."""

    def __init__(self, dirs: Optional[Set[str]] = None) -> None:
        self.dirs: Set[str] = set(dirs or ())
        self.unreadable: Set[str] = set()

    def walk(self, root: str):
        if root not in self.dirs:
            return
        pending = [root]
        while pending:
            current = pending.pop(0)
            if current in self.unreadable:
                continue
            yield current
            prefix = current + "/"
            children = sorted(
                d for d in self.dirs
                if d.startswith(prefix) and "/" not in d[len(prefix):]
            )
            pending.extend(children)

    def is_dir(self, path: str) -> bool:
        return path in self.dirs

    def filesystem_id(self, path: str) -> str:
        return "fake"


class Recorder:
    """Listener that records every notification it receives."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def __call__(self, path, event, watch, is_dir) -> None:
        with self._lock:
            self.calls.append((path, event, watch, is_dir))

    @property
    def paths(self) -> List[str]:
        with self._lock:
            return [call[0] for call in self.calls]

    def events(self) -> List[tuple]:
        with self._lock:
            return [(path, event, is_dir) for path, event, _, is_dir in self.calls]


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def tree() -> FakeTree:
    return FakeTree({"foo", "foo/sub", "foo/sub/deep", "other"})


@pytest.fixture
def driver(tree: FakeTree) -> FakeDriver:
    return FakeDriver(tree=tree)


@pytest.fixture
def config() -> WatcherConfig:
    return WatcherConfig(debounce_delay=0.0, max_workers=1)


@pytest.fixture
def watcher(config: WatcherConfig, tree: FakeTree, driver: FakeDriver):
    """A FileWatcher wired to the in-memory driver and tree."""
    fw = FileWatcher(config, tree=tree, driver_factory=lambda device: driver)
    yield fw
    fw.close()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
