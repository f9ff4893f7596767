# fswatch/watchdog/handlers.py

"""
Event handlers bridging watchdog observers to watch handles
"""
import os
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from datetime import datetime

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirModifiedEvent,
    DirDeletedEvent,
    DirMovedEvent
)

from .events import WatchEvent, EventType

logger = logging.getLogger(__name__)


def directory_identity(path: str) -> Optional[Tuple[int, int]]:
    """(device, inode) of a directory, None if it can't be read"""
    try:
        st = os.stat(path)
    except OSError:
        return None
    return st.st_dev, st.st_ino


class DirectoryEventHandler(FileSystemEventHandler):
    """
    Handler for one non-recursively observed directory.

    Converts watchdog events about direct children of the directory into
    WatchEvents and hands them to a sink. Events about the directory itself
    are dropped, except its deletion which is reported through on_gone.

    A removal that arrives while the same directory (same device and inode)
    is still in place is a leftover from an earlier directory at that path,
    and is ignored.
    """

    def __init__(self, directory: str, display_path: str,
                 sink: Callable[[WatchEvent], None],
                 on_gone: Optional[Callable[[], None]] = None,
                 identity: Optional[Tuple[int, int]] = None,
                 follow_symlinks: bool = True):
        """
        Initialize event handler

        Args:
            directory: Absolute path of the observed directory
            display_path: Directory in the shape reported to listeners
            sink: Receives converted events, in delivery order
            on_gone: Called when the directory itself is deleted or moved away
            identity: (device, inode) of the directory when it was subscribed
            follow_symlinks: Report new symlinks to directories as directories
        """
        self.directory = os.path.normpath(directory)
        self.display_path = display_path
        self.sink = sink
        self.on_gone = on_gone
        self.identity = identity
        self.follow_symlinks = follow_symlinks

        # Statistics
        self.stats = {
            'events_received': 0,
            'events_forwarded': 0,
            'events_ignored': 0,
            'last_event': None,
        }

    def on_any_event(self, event: FileSystemEvent):
        """Handle any file system event"""
        self.stats['events_received'] += 1
        self.stats['last_event'] = datetime.now()

        try:
            if self._is_self_removal(event):
                logger.debug(f"Watched directory went away: {self.directory}")
                if self.on_gone:
                    self.on_gone()
                return

            converted = self._convert_event(event)
            if not converted:
                self.stats['events_ignored'] += 1
                return

            for watch_event in converted:
                self.sink(watch_event)
                self.stats['events_forwarded'] += 1

        except Exception as e:
            logger.error(f"Error handling event {event!r}: {e}", exc_info=True)

    def _is_self_removal(self, event: FileSystemEvent) -> bool:
        if not isinstance(event, (DirDeletedEvent, DirMovedEvent)):
            return False
        if os.path.normpath(self._as_str(event.src_path)) != self.directory:
            return False

        if self.identity is not None and directory_identity(self.directory) == self.identity:
            logger.debug(f"Ignoring stale removal of {self.directory}")
            return False
        return True

    def _convert_event(self, event: FileSystemEvent) -> List[WatchEvent]:
        """Convert a watchdog event to our internal format"""
        is_directory = event.is_directory
        src_path = self._as_str(event.src_path)

        if isinstance(event, (FileMovedEvent, DirMovedEvent)):
            # A rename is a deletion of the old name plus a creation of the new one
            events = []
            deleted = self._child_event(EventType.DELETE, src_path, is_directory)
            if deleted:
                events.append(deleted)
            created = self._child_event(EventType.CREATE, self._as_str(event.dest_path), is_directory)
            if created:
                events.append(created)
            return events

        if isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
            event_type = EventType.CREATE
        elif isinstance(event, (FileModifiedEvent, DirModifiedEvent)):
            event_type = EventType.MODIFY
        elif isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
            event_type = EventType.DELETE
        else:
            # Opened / closed and other event types
            return []

        converted = self._child_event(event_type, src_path, is_directory)
        return [converted] if converted else []

    def _child_event(self, event_type: EventType, path: str,
                     is_directory: bool) -> Optional[WatchEvent]:
        # Only direct children of the observed directory are reported
        path = os.path.normpath(path)
        if os.path.dirname(path) != self.directory:
            return None

        if event_type is EventType.CREATE and not is_directory and self.follow_symlinks:
            # A new symlink to a directory counts as a directory
            is_directory = os.path.isdir(path)

        name = os.path.basename(path)
        return WatchEvent(
            event_type=event_type,
            path=os.path.join(self.display_path, name),
            is_directory=is_directory
        )

    @staticmethod
    def _as_str(path: Any) -> str:
        return os.fsdecode(path)

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics"""
        return self.stats.copy()
