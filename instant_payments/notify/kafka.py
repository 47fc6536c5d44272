"""Kafka notifier publishing transfer notifications to a topic."""

import logging
import threading
from dataclasses import dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from instant_payments.config import KafkaConfig
from instant_payments.exceptions import NotificationError
from instant_payments.notify.base import Notifier

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaNotifier(Notifier):
    """Publish plain-text notifications with a confluent-kafka producer.

    ``publish`` only enqueues the message; delivery is reported later
    through the delivery callback and counted in :attr:`stats`.
    """

    def __init__(self, config: KafkaConfig | str) -> None:
        """Initialize Kafka notifier.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = self._create_producer()
        self.stats = ProducerStats()
        self._lock = threading.RLock()

    def _create_producer(self) -> Producer:
        """Create Kafka producer with configuration."""
        return Producer(self.config.to_dict())

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        with self._lock:
            if err:
                self.stats.failed += 1
            else:
                self.stats.delivered += 1
        if err:
            logger.error("Notification delivery failed: %s", err)
        else:
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def publish(self, topic: str, message: str) -> None:
        """Enqueue a single message on ``topic``."""
        try:
            with self._lock:
                self.producer.produce(
                    topic=topic,
                    value=message.encode("utf-8"),
                    callback=self._delivery_callback,
                )
                self.stats.sent += 1
                self.producer.poll(0)
        except (BufferError, KafkaException) as e:
            raise NotificationError(f"Could not enqueue message for {topic}: {e}") from e

    def flush(self, timeout: float = 30.0) -> int:
        """Flush pending messages; return how many are still queued."""
        return self.producer.flush(timeout)

    def close(self) -> None:
        """Flush and close the producer."""
        remaining = self.flush()
        if remaining:
            logger.warning("Kafka notifier closed with %d undelivered messages", remaining)
        logger.info(
            "Kafka notifier closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
