"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import Callable

import pytest

from instant_payments.accounts import AccountService
from instant_payments.config import TOPIC_TRANSACTION_NOTIFICATIONS
from instant_payments.engine import TransferEngine
from instant_payments.models import Account
from instant_payments.notify import NotificationDispatcher, RecordingNotifier
from instant_payments.store import InMemoryStorage


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def storage() -> InMemoryStorage:
    """Fresh in-memory storage for each test."""
    return InMemoryStorage()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that keeps every published message."""
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier: RecordingNotifier) -> NotificationDispatcher:
    """Dispatcher publishing to the transaction notification topic."""
    return NotificationDispatcher(notifier, TOPIC_TRANSACTION_NOTIFICATIONS)


@pytest.fixture
def engine(storage: InMemoryStorage, dispatcher: NotificationDispatcher) -> TransferEngine:
    """Transfer engine over the in-memory storage."""
    return TransferEngine(storage, dispatcher)


@pytest.fixture
def account_service(storage: InMemoryStorage) -> AccountService:
    """Account service sharing the engine's storage."""
    return AccountService(storage)


@pytest.fixture
def open_account(account_service: AccountService) -> Callable[..., Account]:
    """Factory opening an account with an optional starting balance."""

    def _open(balance: str = "0.00", owner: str = "Test Owner", name: str | None = None) -> Account:
        account = account_service.create_account(name, owner)
        amount = Decimal(balance)
        if amount > 0:
            account = account_service.deposit(account.account_id, amount)
        return account

    return _open
