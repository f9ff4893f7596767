# fswatch/watchdog/events.py

"""
Change events delivered by the watch service
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime


class EventType(Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass
class WatchEvent:
    """Single change reported for an entry of a watched directory"""
    event_type: EventType
    path: str
    is_directory: bool = False
    count: int = 1
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def kind(self) -> str:
        return self.event_type.value

    def __str__(self):
        if self.count > 1:
            return f"{self.event_type.value} (ct={self.count}): {self.path}"
        return f"{self.event_type.value}: {self.path}"
