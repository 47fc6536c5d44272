"""Notifier contract and the best-effort dispatcher used by the engine."""

import logging
import threading
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Fire-and-forget publisher of human-readable messages."""

    @abstractmethod
    def publish(self, topic: str, message: str) -> None:
        """Submit ``message`` to ``topic``.

        Returns once the message has been handed over; delivery is not
        awaited.
        """

    def close(self) -> None:
        """Flush and release resources."""


class NotificationDispatcher:
    """Publish to a fixed topic without ever failing the caller.

    Parameters
    ----------
    notifier : Notifier
        Underlying publisher.
    topic : str
        Logical channel every message goes to.
    """

    def __init__(self, notifier: Notifier, topic: str) -> None:
        self.notifier = notifier
        self.topic = topic
        self.published = 0
        self.failed = 0
        self._lock = threading.Lock()

    def dispatch(self, message: str) -> bool:
        """Publish ``message``; return ``False`` instead of raising on failure."""
        try:
            self.notifier.publish(self.topic, message)
        except Exception:
            with self._lock:
                self.failed += 1
            logger.exception("Failed to publish notification to %s", self.topic)
            return False
        with self._lock:
            self.published += 1
        return True

    def close(self) -> None:
        """Close the underlying notifier, logging any failure."""
        try:
            self.notifier.close()
        except Exception:
            logger.exception("Failed to close notifier")
