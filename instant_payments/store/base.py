"""Storage contract: versioned account store, transaction log, unit of work.

The transfer engine is written against these interfaces only. A backend
provides a :class:`Storage` whose :meth:`Storage.unit_of_work` opens a scope
in which account writes and log appends either all commit or none do.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from instant_payments.models import Account, TransactionRecord

logger = logging.getLogger(__name__)


class AccountStore(ABC):
    """Versioned mapping from account id to account state."""

    @abstractmethod
    def get(self, account_id: int) -> Account | None:
        """Return a snapshot of the account, or ``None`` if it does not exist."""

    @abstractmethod
    def add(self, account: Account) -> Account:
        """Insert a new account and return it with its assigned id."""

    @abstractmethod
    def update(self, account: Account, expected_version: int) -> Account:
        """Write ``account`` if its stored version still equals ``expected_version``.

        Returns the written snapshot with the version incremented.

        Raises
        ------
        ConcurrencyConflictError
            If another writer moved the version since it was read.
        """


class TransactionLog(ABC):
    """Append-only log of completed transfers."""

    @abstractmethod
    def append(self, record: TransactionRecord) -> TransactionRecord:
        """Persist ``record`` and return it with id and timestamp assigned."""

    @abstractmethod
    def get(self, transaction_id: int) -> TransactionRecord | None:
        """Return a committed record by id."""

    @abstractmethod
    def list_for_account(self, account_id: int) -> list[TransactionRecord]:
        """Return committed records where the account is source or destination."""


class UnitOfWork(ABC):
    """Scope in which several writes succeed or fail together.

    Used as a context manager: a clean exit commits, an exception rolls
    back. Callbacks registered with :meth:`on_commit` run only after a
    successful commit, outside the atomic scope.
    """

    accounts: AccountStore
    transactions: TransactionLog

    def __init__(self) -> None:
        self._hooks: list[Callable[[], object]] = []
        self._closed = False

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._closed:
            return False
        if exc_type is None:
            self.commit()
            return False
        try:
            self.rollback()
        except Exception:
            # The exception from the block is the one callers act on
            logger.exception("Rollback failed while handling %s", exc_type.__name__)
        return False

    def on_commit(self, callback: Callable[[], object]) -> None:
        """Register a callback to run after a successful commit."""
        self._hooks.append(callback)

    def commit(self) -> None:
        """Apply every staged write atomically, then run post-commit hooks."""
        if self._closed:
            return
        try:
            self._commit()
        except Exception as e:
            self._closed = True
            self._hooks.clear()
            try:
                self._rollback()
            except Exception:
                logger.exception("Rollback failed after commit error %s", type(e).__name__)
            raise
        self._closed = True
        hooks, self._hooks = self._hooks, []
        for hook in hooks:
            try:
                hook()
            except Exception:
                # The unit is already durable; a hook cannot undo it.
                logger.exception("Post-commit hook %r failed", hook)

    def rollback(self) -> None:
        """Discard every staged write."""
        if self._closed:
            return
        self._closed = True
        self._hooks.clear()
        self._rollback()

    @abstractmethod
    def _commit(self) -> None:
        """Backend-specific atomic commit."""

    @abstractmethod
    def _rollback(self) -> None:
        """Backend-specific discard."""


class Storage(ABC):
    """Factory for units of work over one consistent storage backend."""

    @abstractmethod
    def unit_of_work(self) -> UnitOfWork:
        """Open a new unit of work."""

    def close(self) -> None:
        """Release backend resources."""
