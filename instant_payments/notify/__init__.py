"""Notification publishers for completed transfers."""

from instant_payments.notify.base import NotificationDispatcher, Notifier
from instant_payments.notify.console import ConsoleNotifier
from instant_payments.notify.kafka import KafkaNotifier
from instant_payments.notify.memory import NullNotifier, RecordingNotifier

__all__ = [
    "ConsoleNotifier",
    "KafkaNotifier",
    "NotificationDispatcher",
    "Notifier",
    "NullNotifier",
    "RecordingNotifier",
]
