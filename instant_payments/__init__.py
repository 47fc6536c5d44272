"""Instant payment transfers with optimistic concurrency control."""

from instant_payments.accounts import AccountService
from instant_payments.engine import TransferEngine, retry_on_conflict
from instant_payments.exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    InvalidRequestError,
    PaymentError,
    PersistenceError,
)
from instant_payments.models import Account, TransactionRecord, TransferRequest

__version__ = "0.1.0"

__all__ = [
    "Account",
    "AccountNotFoundError",
    "AccountService",
    "ConcurrencyConflictError",
    "InsufficientFundsError",
    "InvalidRequestError",
    "PaymentError",
    "PersistenceError",
    "TransactionRecord",
    "TransferEngine",
    "TransferRequest",
    "retry_on_conflict",
]
