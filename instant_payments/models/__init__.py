"""Domain models for instant payments."""

from instant_payments.models.account import DEFAULT_ACCOUNT_NAME, Account
from instant_payments.models.money import (
    add_amounts,
    check_amount,
    subtract_amounts,
    sum_amounts,
)
from instant_payments.models.requests import AccountRequest, TransferRequest, parse_amount
from instant_payments.models.transaction import TransactionRecord

__all__ = [
    "DEFAULT_ACCOUNT_NAME",
    "Account",
    "AccountRequest",
    "TransactionRecord",
    "TransferRequest",
    "add_amounts",
    "check_amount",
    "parse_amount",
    "subtract_amounts",
    "sum_amounts",
]
