"""Transaction record model."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class TransactionRecord:
    """Immutable record of a completed transfer.

    ``transaction_id`` and ``created_at`` are assigned by the transaction
    log when the record is appended.
    """

    source_account_id: int
    destination_account_id: int
    amount: Decimal
    transaction_id: int | None = None
    created_at: datetime | None = None
