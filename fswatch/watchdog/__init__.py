# fswatch/watchdog/__init__.py

"""
fswatch watch service
Directory change notifications turned into per-file callbacks
"""
from .events import WatchEvent, EventType
from .patterns import PatternMatcher, base_directory, is_recursive_pattern
from .watch import Watch, Listener
from .registry import WatchRegistry
from .tree import DirectoryTree, LocalDirectoryTree
from .expander import RecursiveExpander
from .handlers import DirectoryEventHandler
from .driver import WatchHandle, WatchServiceDriver
from .debounce import BatchCoalescer
from .dispatcher import EventDispatcher, NotificationPool
from .watcher import FileWatcher

__all__ = [
    'WatchEvent',
    'EventType',
    'PatternMatcher',
    'base_directory',
    'is_recursive_pattern',
    'Watch',
    'Listener',
    'WatchRegistry',
    'DirectoryTree',
    'LocalDirectoryTree',
    'RecursiveExpander',
    'DirectoryEventHandler',
    'WatchHandle',
    'WatchServiceDriver',
    'BatchCoalescer',
    'EventDispatcher',
    'NotificationPool',
    'FileWatcher',
]
