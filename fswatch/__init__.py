# fswatch/__init__.py

"""
fswatch - pattern based file watching on top of native change notifications
"""
from .exceptions import FileWatchError, InvalidPatternError, WatchServiceClosedError
from .watchdog import EventType, FileWatcher, Watch, WatchEvent
from .utils import WatcherConfig, load_config

__version__ = "1.0.0"

__all__ = [
    'FileWatcher',
    'Watch',
    'WatchEvent',
    'EventType',
    'WatcherConfig',
    'load_config',
    'FileWatchError',
    'InvalidPatternError',
    'WatchServiceClosedError',
]
