"""
User-visible notification sink.

Messages are logged and kept in a bounded in-memory history that the MCP
tools and REST API expose. notify() never raises and never blocks on I/O
beyond the logging handlers.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, List

log = logging.getLogger(__name__)

_DEFAULT_HISTORY = 100


@dataclass(frozen=True)
class Notice:
    message: str
    level: int
    created: datetime

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "level": logging.getLevelName(self.level).lower(),
            "created": self.created.isoformat(timespec="seconds"),
        }


class Notifier:
    def __init__(self, history: int = _DEFAULT_HISTORY) -> None:
        self._lock = threading.Lock()
        self._notices: Deque[Notice] = deque(maxlen=history)

    def notify(self, message: str, level: int = logging.INFO) -> None:
        """Record a single-line message for the user."""
        log.log(level, "%s", message)
        with self._lock:
            self._notices.append(Notice(message=message, level=level, created=datetime.now()))

    def warn(self, message: str) -> None:
        self.notify(message, logging.WARNING)

    def error(self, message: str) -> None:
        self.notify(message, logging.ERROR)

    def recent(self, limit: int = 20) -> List[Notice]:
        """Most recent notices, newest last."""
        with self._lock:
            items = list(self._notices)
        return items[-limit:] if limit > 0 else []
