"""Transient request types handed to the services by the boundary layer."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from instant_payments.exceptions import InvalidRequestError


@dataclass(frozen=True)
class TransferRequest:
    """Move ``amount`` from ``source_id`` to ``destination_id``."""

    source_id: int
    destination_id: int
    amount: Decimal


@dataclass(frozen=True)
class AccountRequest:
    """Open a new zero-balance account."""

    owner_name: str
    account_name: str | None = None


def parse_amount(value: Any) -> Decimal:
    """Convert a boundary value into an exact ``Decimal`` amount.

    Strings and integers are accepted. Floats are refused because they
    cannot carry an exact decimal amount.

    Parameters
    ----------
    value : Any
        Raw amount from the caller.

    Returns
    -------
    Decimal
        Parsed amount, keeping the caller's scale.

    Raises
    ------
    InvalidRequestError
        If the value is not an exact decimal amount.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidRequestError(f"amount must be an exact decimal, got {type(value).__name__}")
    if isinstance(value, (int, str)):
        try:
            return Decimal(value.strip() if isinstance(value, str) else value)
        except InvalidOperation as e:
            raise InvalidRequestError(f"amount {value!r} is not a decimal number") from e
    raise InvalidRequestError(f"amount must be an exact decimal, got {type(value).__name__}")
