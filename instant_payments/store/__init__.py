"""Storage backends for accounts and the transaction log."""

from instant_payments.store.base import AccountStore, Storage, TransactionLog, UnitOfWork
from instant_payments.store.memory import InMemoryStorage

__all__ = ["AccountStore", "InMemoryStorage", "Storage", "TransactionLog", "UnitOfWork"]
