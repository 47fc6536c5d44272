"""Thread-safe in-memory storage backend with versioned accounts."""

import itertools
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from instant_payments.exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    PersistenceError,
)
from instant_payments.models import Account, TransactionRecord, sum_amounts
from instant_payments.store.base import AccountStore, Storage, TransactionLog, UnitOfWork


@dataclass
class InMemoryStorage(Storage):
    """In-memory store for accounts and transfer records.

    Committed state lives here; each unit of work stages its writes and
    applies them under ``_lock`` in one step at commit. The lock is only
    held for single reads and for the final check-and-apply, never for the
    lifetime of a unit of work.
    """

    accounts: dict[int, Account] = field(default_factory=dict)
    transactions: list[TransactionRecord] = field(default_factory=list)

    # Relationship index: account id -> positions in ``transactions``
    _account_transactions: dict[int, list[int]] = field(default_factory=dict)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _account_ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)
    _transaction_ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        """Open a new unit of work."""
        return InMemoryUnitOfWork(self)

    def get_account(self, account_id: int) -> Account | None:
        """Return a copy of the committed account."""
        with self._lock:
            account = self.accounts.get(account_id)
            return replace(account) if account is not None else None

    def get_account_transactions(self, account_id: int) -> list[TransactionRecord]:
        """Get all committed records touching an account."""
        with self._lock:
            indices = self._account_transactions.get(account_id, [])
            return [self.transactions[i] for i in indices]

    def total_balance(self) -> Decimal:
        """Sum of all committed balances."""
        with self._lock:
            return sum_amounts(a.balance for a in self.accounts.values())

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._lock:
            return {
                "accounts": len(self.accounts),
                "transactions": len(self.transactions),
            }


class InMemoryUnitOfWork(UnitOfWork):
    """Staged writes against an :class:`InMemoryStorage`."""

    def __init__(self, storage: InMemoryStorage) -> None:
        super().__init__()
        self.storage = storage
        self._added: dict[int, Account] = {}
        self._updated: dict[int, Account] = {}
        # Committed version each updated account was read at
        self._read_versions: dict[int, int] = {}
        self._appended: list[TransactionRecord] = []
        self.accounts = _MemoryAccountStore(self)
        self.transactions = _MemoryTransactionLog(self)

    def _commit(self) -> None:
        storage = self.storage
        with storage._lock:
            for account_id, version in self._read_versions.items():
                current = storage.accounts.get(account_id)
                if current is None or current.version != version:
                    raise ConcurrencyConflictError(
                        f"Account {account_id} was modified by a concurrent transfer"
                    )

            for account_id, account in self._added.items():
                storage.accounts[account_id] = account
                storage._account_transactions[account_id] = []
            for account_id, account in self._updated.items():
                storage.accounts[account_id] = account

            for record in self._appended:
                idx = len(storage.transactions)
                storage.transactions.append(record)
                for account_id in (record.source_account_id, record.destination_account_id):
                    storage._account_transactions.setdefault(account_id, []).append(idx)

    def _rollback(self) -> None:
        self._added.clear()
        self._updated.clear()
        self._read_versions.clear()
        self._appended.clear()


class _MemoryAccountStore(AccountStore):
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    def get(self, account_id: int) -> Account | None:
        staged = self._uow._updated.get(account_id) or self._uow._added.get(account_id)
        if staged is not None:
            return replace(staged)
        return self._uow.storage.get_account(account_id)

    def add(self, account: Account) -> Account:
        storage = self._uow.storage
        with storage._lock:
            account_id = next(storage._account_ids)
        now = datetime.now()
        stored = replace(
            account,
            account_id=account_id,
            version=0,
            created_at=account.created_at or now,
        )
        self._uow._added[account_id] = stored
        return replace(stored)

    def update(self, account: Account, expected_version: int) -> Account:
        account_id = account.account_id
        if account.balance < 0:
            raise PersistenceError(f"Account {account_id} balance cannot be negative")

        uow = self._uow
        staged = uow._updated.get(account_id) or uow._added.get(account_id)
        if staged is not None:
            current_version = staged.version
        else:
            committed = uow.storage.get_account(account_id)
            if committed is None:
                raise AccountNotFoundError("account")
            current_version = committed.version

        if current_version != expected_version:
            raise ConcurrencyConflictError(
                f"Account {account_id} was modified by a concurrent transfer "
                f"(expected version {expected_version}, found {current_version})"
            )

        written = replace(account, version=expected_version + 1, updated_at=datetime.now())
        if account_id in uow._added:
            uow._added[account_id] = written
        else:
            uow._read_versions.setdefault(account_id, expected_version)
            uow._updated[account_id] = written
        return replace(written)


class _MemoryTransactionLog(TransactionLog):
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    def append(self, record: TransactionRecord) -> TransactionRecord:
        storage = self._uow.storage
        with storage._lock:
            transaction_id = next(storage._transaction_ids)
        persisted = replace(
            record,
            transaction_id=transaction_id,
            created_at=record.created_at or datetime.now(),
        )
        self._uow._appended.append(persisted)
        return persisted

    def get(self, transaction_id: int) -> TransactionRecord | None:
        with self._uow.storage._lock:
            for record in self._uow.storage.transactions:
                if record.transaction_id == transaction_id:
                    return record
        return None

    def list_for_account(self, account_id: int) -> list[TransactionRecord]:
        return self._uow.storage.get_account_transactions(account_id)
