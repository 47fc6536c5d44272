"""Exact ``Decimal`` arithmetic for balances."""

from decimal import Decimal, Inexact, localcontext
from typing import Any, Iterable

from instant_payments.exceptions import InvalidRequestError


def _exact_precision(a: Decimal, b: Decimal) -> int:
    """Digits needed to hold ``a + b`` or ``a - b`` without rounding."""
    top = max(a.adjusted(), b.adjusted())
    bottom = min(a.as_tuple().exponent, b.as_tuple().exponent)
    # One extra digit for a carry out of the top position
    return max(top - bottom + 2, 1)


def add_amounts(a: Decimal, b: Decimal) -> Decimal:
    """Return ``a + b`` exactly, whatever the number of significant digits.

    The result keeps the finer of the two scales, so ``0 + 1.00`` is ``1.00``.
    """
    with localcontext() as ctx:
        ctx.prec = _exact_precision(a, b)
        ctx.traps[Inexact] = True
        return a + b


def subtract_amounts(a: Decimal, b: Decimal) -> Decimal:
    """Return ``a - b`` exactly."""
    with localcontext() as ctx:
        ctx.prec = _exact_precision(a, b)
        ctx.traps[Inexact] = True
        return a - b


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Exact sum of ``amounts``; ``Decimal("0")`` when empty."""
    total = Decimal("0")
    for amount in amounts:
        total = add_amounts(total, amount)
    return total


def check_amount(amount: Any) -> Decimal:
    """Return ``amount`` if it is a finite, positive ``Decimal``.

    Raises
    ------
    InvalidRequestError
        If ``amount`` is not a ``Decimal`` (use :func:`parse_amount` at the
        boundary), or is not finite and positive.
    """
    if not isinstance(amount, Decimal):
        raise InvalidRequestError(f"amount must be a Decimal, got {type(amount).__name__}")
    if not amount.is_finite() or amount <= 0:
        raise InvalidRequestError("amount must be positive")
    return amount
