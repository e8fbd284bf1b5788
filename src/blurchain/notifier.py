from __future__ import annotations
import logging
import threading
from typing import List, Protocol, Tuple

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Fire-and-forget status sink keyed by job name."""

    def notify(self, job_name: str, message: str) -> None: ...


class LoggingNotifier:
    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def notify(self, job_name: str, message: str) -> None:
        logger.log(self.level, "[%s] %s", job_name, message)


class RecordingNotifier:
    """Keeps every (job_name, message) pair; safe across worker threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[Tuple[str, str]] = []

    def notify(self, job_name: str, message: str) -> None:
        with self._lock:
            self._events.append((job_name, message))

    @property
    def events(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._events)

    def messages(self, job_name: str) -> List[str]:
        return [m for j, m in self.events if j == job_name]
