"""Wire storage, notifier and services together from configuration."""

import logging

from instant_payments.accounts import AccountService
from instant_payments.config import PaymentsConfig
from instant_payments.engine import TransferEngine
from instant_payments.notify import (
    ConsoleNotifier,
    KafkaNotifier,
    NotificationDispatcher,
    Notifier,
    NullNotifier,
)
from instant_payments.store import InMemoryStorage, Storage

logger = logging.getLogger(__name__)


def build_storage(config: PaymentsConfig) -> Storage:
    """Create the configured storage backend."""
    if config.storage_backend == "postgres":
        from instant_payments.store.postgres import PostgresStorage

        storage = PostgresStorage(config.postgres)
        storage.create_schema()
        return storage
    return InMemoryStorage()


def build_notifier(config: PaymentsConfig) -> Notifier:
    """Create the configured notifier."""
    kind = config.notification.notifier
    if kind == "kafka":
        return KafkaNotifier(config.kafka)
    if kind == "console":
        return ConsoleNotifier()
    return NullNotifier()


def build_services(
    config: PaymentsConfig,
    storage: Storage | None = None,
    notifier: Notifier | None = None,
) -> tuple[TransferEngine, AccountService]:
    """Build a transfer engine and account service over shared storage."""
    storage = storage if storage is not None else build_storage(config)
    notifier = notifier if notifier is not None else build_notifier(config)
    dispatcher = NotificationDispatcher(notifier, config.notification.topic)
    logger.info(
        "Services ready: storage=%s, notifier=%s, topic=%s",
        type(storage).__name__,
        type(notifier).__name__,
        config.notification.topic,
    )
    return TransferEngine(storage, dispatcher), AccountService(storage)
