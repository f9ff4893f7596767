# fswatch/watchdog/tree.py

"""
Directory tree access used by recursive expansion
"""
import os
import logging
from typing import Hashable, Iterator, Set, Tuple

logger = logging.getLogger(__name__)


def is_within(path: str, parent: str) -> bool:
    """Check if path lies below parent ('' being the current directory)"""
    parent = parent.rstrip('/\\')
    if not parent:
        return True
    return path.startswith(parent + '/') or path.startswith(parent + '\\')


class DirectoryTree:
    """
    Base directory tree (to be overridden by subclasses)
    """

    def walk(self, root: str) -> Iterator[str]:
        """
        Yield every directory of the subtree rooted at root, root included.

        Unreadable subtrees are skipped, never raised.
        """
        raise NotImplementedError

    def is_dir(self, path: str) -> bool:
        raise NotImplementedError

    def filesystem_id(self, path: str) -> Hashable:
        """Identify the filesystem a path lives on"""
        raise NotImplementedError


class LocalDirectoryTree(DirectoryTree):
    """
    Directory tree backed by the local filesystem
    """

    def __init__(self, follow_symlinks: bool = True):
        self.follow_symlinks = follow_symlinks

    def walk(self, root: str) -> Iterator[str]:
        visited: Set[Tuple[int, int]] = set()

        def on_error(error: OSError):
            logger.warning(f"Skipping unreadable directory {error.filename}: {error.strerror}")

        for dirpath, dirnames, _ in os.walk(root or os.curdir,
                                            onerror=on_error,
                                            followlinks=self.follow_symlinks):
            try:
                stat = os.stat(dirpath)
            except OSError as e:
                logger.warning(f"Skipping directory {dirpath}: {e}")
                dirnames[:] = []
                continue

            key = (stat.st_dev, stat.st_ino)
            if key in visited:
                # Symlink loop
                logger.debug(f"Skipping already visited directory: {dirpath}")
                dirnames[:] = []
                continue
            visited.add(key)

            yield self._display_path(root, dirpath)

    @staticmethod
    def _display_path(root: str, dirpath: str) -> str:
        # Keep the caller's shape for the current directory
        if not root and dirpath.startswith(os.curdir + os.sep):
            return dirpath[len(os.curdir + os.sep):]
        if not root and dirpath == os.curdir:
            return ''
        return dirpath

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path or os.curdir)

    def filesystem_id(self, path: str) -> Hashable:
        return os.stat(path or os.curdir).st_dev
