"""In-process notifiers for development and tests."""

import threading

from instant_payments.notify.base import Notifier


class RecordingNotifier(Notifier):
    """Keep published messages in memory, per topic."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, message: str) -> None:
        with self._lock:
            self.messages.append((topic, message))

    def messages_for(self, topic: str) -> list[str]:
        """Messages published to ``topic`` in submission order."""
        with self._lock:
            return [m for t, m in self.messages if t == topic]


class NullNotifier(Notifier):
    """Discard every message."""

    def publish(self, topic: str, message: str) -> None:
        return None
