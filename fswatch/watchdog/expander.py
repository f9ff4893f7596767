# fswatch/watchdog/expander.py

"""
Recursive expansion of watches over directory subtrees
"""
import logging
from typing import Callable, List

from .tree import DirectoryTree, is_within
from .watch import Watch

logger = logging.getLogger(__name__)


class RecursiveExpander:
    """
    Registers a watch at every directory of a subtree.

    Used once when a recursive watch is added, then again for each new
    subdirectory that shows up under it, so only the new part of the tree
    is walked.
    """

    def __init__(self, tree: DirectoryTree,
                 register: Callable[[Watch, str], bool]):
        """
        Initialize recursive expander

        Args:
            tree: Directory tree to walk
            register: Registers a watch at one directory, returns success
        """
        self.tree = tree
        self.register = register

        self.stats = {
            'expansions': 0,
            'directories_registered': 0,
            'errors': 0,
        }

    def expand(self, watch: Watch, directory: str) -> int:
        """
        Register a watch at directory and every directory below it

        Failures are logged and skip only the directory concerned.

        Args:
            watch: Recursive watch
            directory: Root of the subtree

        Returns:
            Number of directories registered
        """
        self.stats['expansions'] += 1
        registered = 0
        failed: List[str] = []

        try:
            for subdirectory in self.tree.walk(directory):
                if any(is_within(subdirectory, parent) for parent in failed):
                    continue
                try:
                    if self.register(watch, subdirectory):
                        registered += 1
                except Exception as e:
                    self.stats['errors'] += 1
                    failed.append(subdirectory)
                    logger.warning(f"Failed to watch directory {subdirectory}, skipping its subtree: {e}")
        except Exception as e:
            self.stats['errors'] += 1
            logger.warning(f"Recursion error under {directory}: {e}")

        self.stats['directories_registered'] += registered
        logger.debug(f"Expanded {watch.pattern} under '{directory}': {registered} directories")
        return registered
