"""Custom exception hierarchy for instant-payments.

Every error carries the HTTP status the boundary layer should answer with.
"""


class PaymentError(Exception):
    """Base exception for all instant-payments errors."""

    status_code: int = 500


class InvalidRequestError(PaymentError):
    """Raised when a request is malformed, self-referential or non-positive."""

    status_code = 400


class AccountNotFoundError(PaymentError):
    """Raised when a referenced account does not exist."""

    status_code = 404


class InsufficientFundsError(PaymentError):
    """Raised when the source balance cannot cover the requested amount."""

    status_code = 400


class ConcurrencyConflictError(PaymentError):
    """Raised when a conditioned write loses an optimistic-concurrency race.

    Safe to retry the whole operation from scratch.
    """

    status_code = 500


class PersistenceError(PaymentError):
    """Raised when the storage backend is unavailable or a write fails."""

    status_code = 500


class ConfigurationError(PaymentError):
    """Raised when configuration is invalid or missing."""


class NotificationError(PaymentError):
    """Raised when a notifier fails to publish a message."""


def http_status_for(exc: BaseException) -> int:
    """Return the HTTP status code for an exception raised by this package."""
    if isinstance(exc, PaymentError):
        return exc.status_code
    return 500
