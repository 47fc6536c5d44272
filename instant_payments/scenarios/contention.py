"""Contention scenario: many concurrent transfers draining one source account."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from instant_payments.accounts import AccountService
from instant_payments.config import TOPIC_TRANSACTION_NOTIFICATIONS
from instant_payments.engine import TransferEngine
from instant_payments.exceptions import (
    ConcurrencyConflictError,
    InsufficientFundsError,
    PaymentError,
)
from instant_payments.generators import AccountRequestGenerator, TransferRequestGenerator
from instant_payments.models import (
    Account,
    TransactionRecord,
    TransferRequest,
    add_amounts,
    sum_amounts,
)
from instant_payments.notify import NotificationDispatcher, Notifier, RecordingNotifier
from instant_payments.serialization import to_dict
from instant_payments.store import InMemoryStorage, Storage

logger = logging.getLogger(__name__)


@dataclass
class ContentionReport:
    """Outcome of one contention run."""

    attempts: int
    initial_source_balance: Decimal
    initial_destination_balance: Decimal
    final_source: Account
    final_destination: Account
    succeeded: list[TransactionRecord] = field(default_factory=list)
    conflicts: int = 0
    insufficient_funds: int = 0
    other_errors: int = 0
    notifications: int = 0

    @property
    def failed(self) -> int:
        """Attempts that did not commit."""
        return self.conflicts + self.insufficient_funds + self.other_errors

    @property
    def total_debited(self) -> Decimal:
        """Sum of committed transfer amounts."""
        return sum_amounts(r.amount for r in self.succeeded)

    @property
    def conserved(self) -> bool:
        """Whether the two balances still add up to the starting total."""
        before = add_amounts(self.initial_source_balance, self.initial_destination_balance)
        after = add_amounts(self.final_source.balance, self.final_destination.balance)
        return before == after

    def to_dict(self) -> dict[str, Any]:
        """Summary suitable for JSON output."""
        return {
            "attempts": self.attempts,
            "succeeded": len(self.succeeded),
            "conflicts": self.conflicts,
            "insufficient_funds": self.insufficient_funds,
            "other_errors": self.other_errors,
            "notifications": self.notifications,
            "total_debited": self.total_debited,
            "conserved": self.conserved,
            "final_source": to_dict(self.final_source),
            "final_destination": to_dict(self.final_destination),
        }


class ContentionScenario:
    """Fire transfers from one source account at the same time.

    This scenario:
    - Opens a source and a destination account for synthetic owners
    - Funds them with the initial balances
    - Releases every transfer at once from a thread pool
    - Collects which attempts committed and why the others failed
    """

    def __init__(
        self,
        initial_balance: Decimal = Decimal("100.00"),
        destination_balance: Decimal = Decimal("0.00"),
        amounts: list[Decimal] | None = None,
        num_transfers: int = 10,
        max_amount: Decimal = Decimal("50.00"),
        max_workers: int = 8,
        storage: Storage | None = None,
        notifier: Notifier | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize contention scenario.

        Parameters
        ----------
        initial_balance : Decimal
            Starting balance of the source account.
        destination_balance : Decimal
            Starting balance of the destination account.
        amounts : list[Decimal] | None
            Explicit transfer amounts; generated at random when omitted.
        num_transfers : int
            Number of generated transfers when ``amounts`` is omitted.
        max_amount : Decimal
            Upper bound for generated amounts.
        max_workers : int
            Thread pool size.
        storage : Storage | None
            Backend to run against (in-memory by default).
        notifier : Notifier | None
            Notifier to publish to (recording by default).
        seed : int | None
            Random seed for reproducibility.
        """
        self.initial_balance = initial_balance
        self.destination_balance = destination_balance
        self.amounts = amounts
        self.num_transfers = num_transfers
        self.max_amount = max_amount
        self.max_workers = max_workers

        self.storage = storage if storage is not None else InMemoryStorage()
        self.notifier = notifier if notifier is not None else RecordingNotifier()
        self.dispatcher = NotificationDispatcher(self.notifier, TOPIC_TRANSACTION_NOTIFICATIONS)
        self.engine = TransferEngine(self.storage, self.dispatcher)
        self.accounts = AccountService(self.storage)

        self._account_gen = AccountRequestGenerator(seed=seed)
        self._transfer_gen = TransferRequestGenerator(seed=seed)

    def _open_account(self, balance: Decimal) -> Account:
        request = self._account_gen.generate()
        account = self.accounts.create_account(request.account_name, request.owner_name)
        if balance > 0:
            account = self.accounts.deposit(account.account_id, balance)
        return account

    def _build_requests(self, source_id: int, destination_id: int) -> list[TransferRequest]:
        if self.amounts is not None:
            return [TransferRequest(source_id, destination_id, amount) for amount in self.amounts]
        return list(
            self._transfer_gen.generate_stream(
                source_id, destination_id, self.num_transfers, max_amount=self.max_amount
            )
        )

    def run(self) -> ContentionReport:
        """Run every transfer concurrently and report the outcome."""
        source = self._open_account(self.initial_balance)
        destination = self._open_account(self.destination_balance)
        requests = self._build_requests(source.account_id, destination.account_id)

        logger.info(
            "Starting contention scenario: %d transfers from account %s (balance %s)",
            len(requests),
            source.account_id,
            source.balance,
        )

        start = threading.Event()

        def attempt(request: TransferRequest) -> TransactionRecord | PaymentError:
            start.wait()
            try:
                return self.engine.execute_transfer(request)
            except PaymentError as e:
                return e

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(attempt, request) for request in requests]
            start.set()
            outcomes = [future.result() for future in futures]

        report = ContentionReport(
            attempts=len(requests),
            initial_source_balance=source.balance,
            initial_destination_balance=destination.balance,
            final_source=self.accounts.get_account(source.account_id),
            final_destination=self.accounts.get_account(destination.account_id),
            notifications=self.dispatcher.published,
        )
        for outcome in outcomes:
            if isinstance(outcome, TransactionRecord):
                report.succeeded.append(outcome)
            elif isinstance(outcome, ConcurrencyConflictError):
                report.conflicts += 1
            elif isinstance(outcome, InsufficientFundsError):
                report.insufficient_funds += 1
            else:
                report.other_errors += 1

        logger.info(
            "Contention scenario complete: succeeded=%d, conflicts=%d, insufficient=%d, conserved=%s",
            len(report.succeeded),
            report.conflicts,
            report.insufficient_funds,
            report.conserved,
        )
        return report
