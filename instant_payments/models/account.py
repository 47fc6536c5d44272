"""Account model."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

DEFAULT_ACCOUNT_NAME = "Default Account"


@dataclass
class Account:
    """Bank account snapshot.

    Stores hand out copies: mutating an ``Account`` never changes stored
    state. Balances change only through a conditioned write keyed on
    ``version``, which the store increments on every successful write.
    """

    account_id: int | None
    owner_name: str
    account_name: str = DEFAULT_ACCOUNT_NAME
    balance: Decimal = Decimal("0")
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
