import logging
import threading
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notifier(Protocol):
    def notify(self, kind: NotificationKind, message: str) -> None: ...


class LoggingNotifier:
    """Default notifier for headless use: notifications go to the log."""

    def notify(self, kind: NotificationKind, message: str) -> None:
        level = logging.ERROR if kind == NotificationKind.ERROR else logging.INFO
        logger.log(level, "[%s] %s", NotificationKind(kind).value, message)


class RecordingNotifier:
    """Keeps notifications in memory (tests, API responses)."""

    def __init__(self) -> None:
        self.messages: list[tuple[NotificationKind, str]] = []
        self._lock = threading.Lock()

    def notify(self, kind: NotificationKind, message: str) -> None:
        with self._lock:
            self.messages.append((NotificationKind(kind), message))

    def of_kind(self, kind: NotificationKind) -> list[str]:
        with self._lock:
            return [m for k, m in self.messages if k == kind]
