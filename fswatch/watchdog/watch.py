# fswatch/watchdog/watch.py

"""
File watchpoints
"""
import logging
import weakref
from typing import Any, Callable, Optional

from .patterns import PatternMatcher, normalize_pattern, is_recursive_pattern

logger = logging.getLogger(__name__)

# listener(path, event_kind, watch, is_directory)
Listener = Callable[[str, str, 'Watch', bool], Any]


class _StrongRef:
    """Stand-in for objects that can't be weakly referenced"""

    __slots__ = ('obj',)

    def __init__(self, obj: Any):
        self.obj = obj

    def __call__(self):
        return self.obj


def _make_ref(obj: Any, weak: bool):
    if not weak:
        return _StrongRef(obj)
    try:
        if hasattr(obj, '__self__') and hasattr(obj, '__func__'):
            return weakref.WeakMethod(obj)
        return weakref.ref(obj)
    except TypeError:
        return _StrongRef(obj)


class Watch:
    """
    A file watchpoint: a pattern, the listener to call and what owns it.

    The listener and attachment are held by weak reference when possible,
    so a watch created with an inline lambda will not survive long. Pass
    ``weak=False`` to hold them strongly and end the watch with
    ``cancel()`` or an ``alive`` check instead.
    """

    def __init__(self, pattern: str,
                 listener: Listener,
                 attachment: Any = None,
                 flag: Any = 0,
                 alive: Optional[Callable[[], bool]] = None,
                 weak: bool = True):
        """
        Create a file watchpoint

        Args:
            pattern: Files to match, see ``fswatch.watchdog.patterns``
            listener: Called as listener(path, event_kind, watch, is_directory)
            attachment: User object attached to this watchpoint
            flag: User constant attached to this watchpoint
            alive: Liveness check, the watch is evicted once it returns False
            weak: Hold listener and attachment by weak reference
        """
        self.pattern = normalize_pattern(pattern)
        self.flag = flag
        self._listener_ref = _make_ref(listener, weak)
        self._attachment_ref = _make_ref(attachment, weak) if attachment is not None else None
        self._alive = alive
        self._cancelled = False
        self.matcher: Optional[PatternMatcher] = None

    @property
    def listener(self) -> Optional[Listener]:
        return self._listener_ref()

    @property
    def attachment(self) -> Any:
        return self._attachment_ref() if self._attachment_ref is not None else None

    def init(self, base_dir: str = '') -> PatternMatcher:
        """
        Compile the pattern; must run before any call to matches().

        Args:
            base_dir: Directory the pattern is anchored at

        Raises:
            InvalidPatternError: if the pattern does not compile
        """
        if self.matcher is None:
            self.matcher = PatternMatcher(self.pattern)
            logger.debug(f"Initialized watch at '{base_dir}': {self.pattern}")
        return self.matcher

    def matches(self, path: str) -> bool:
        if self.matcher is None:
            raise RuntimeError(f"Watch not initialized: {self.pattern}")
        return self.matcher.matches(path)

    def is_recursive(self) -> bool:
        return is_recursive_pattern(self.pattern)

    def cancel(self):
        """Mark this watch as no longer wanted; it is evicted on the next cycle"""
        self._cancelled = True

    def is_valid(self) -> bool:
        """Not valid once cancelled, or if either the listener or attachment is gone"""
        if self._cancelled:
            return False
        if self._listener_ref() is None:
            return False
        if self._attachment_ref is not None and self._attachment_ref() is None:
            return False
        if self._alive is not None:
            try:
                return bool(self._alive())
            except Exception as e:
                logger.warning(f"Liveness check failed for watch {self.pattern}: {e}")
                return False
        return True

    def __eq__(self, other):
        if not isinstance(other, Watch):
            return NotImplemented
        # Bound methods compare equal when they wrap the same function and object
        return (self.listener == other.listener and
                self.pattern == other.pattern and
                self.attachment is other.attachment and
                self.flag == other.flag)

    def __hash__(self):
        return hash((self.pattern, self.flag))

    def __repr__(self):
        return f"Watch({self.pattern!r}, flag={self.flag!r})"
