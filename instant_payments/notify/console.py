"""Console notifier for debugging and development."""

import threading
from datetime import datetime

from instant_payments.notify.base import Notifier


class ConsoleNotifier(Notifier):
    """Print notifications to stdout."""

    def __init__(self, show_timestamp: bool = True) -> None:
        """Initialize console notifier.

        Parameters
        ----------
        show_timestamp : bool
            Prefix each line with the local time of publication.
        """
        self.show_timestamp = show_timestamp
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def publish(self, topic: str, message: str) -> None:
        prefix = f"{datetime.now().isoformat(timespec='seconds')} " if self.show_timestamp else ""
        with self._lock:
            print(f"{prefix}[{topic}] {message}")
            self._counts[topic] = self._counts.get(topic, 0) + 1

    def close(self) -> None:
        """Print summary and close."""
        print(f"\n{'='*60}")
        print("Console Notifier Summary")
        print("=" * 60)
        for topic, count in self._counts.items():
            print(f"  {topic}: {count} messages")
