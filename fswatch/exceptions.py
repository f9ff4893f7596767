# fswatch/exceptions.py

"""
Exceptions raised inside the watch service
"""


class FileWatchError(Exception):
    """Base class for watch service errors"""
    pass


class InvalidPatternError(FileWatchError):
    """Raised when a watch pattern cannot be compiled"""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern '{pattern}': {reason}")


class WatchServiceClosedError(FileWatchError):
    """Raised by a blocked wait once its watch service has been closed"""
    pass


__all__ = ['FileWatchError', 'InvalidPatternError', 'WatchServiceClosedError']
