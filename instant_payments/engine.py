"""Transfer engine: validated, atomic, optimistically concurrent transfers."""

import logging
import time
from dataclasses import replace

from instant_payments.exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    InvalidRequestError,
)
from instant_payments.models import (
    TransactionRecord,
    TransferRequest,
    add_amounts,
    check_amount,
    subtract_amounts,
)
from instant_payments.notify.base import NotificationDispatcher
from instant_payments.store.base import Storage

logger = logging.getLogger(__name__)


def build_notification(record: TransactionRecord) -> str:
    """Human-readable completion message for a transfer."""
    return (
        f"Payment of {record.amount} from account {record.source_account_id} "
        f"to account {record.destination_account_id} succeeded."
    )


def _transfer_fields(request: TransferRequest, **fields: object) -> dict[str, object]:
    """Structured ``extra=`` fields for transfer log lines."""
    return {
        "source": request.source_id,
        "destination": request.destination_id,
        "amount": request.amount,
        **fields,
    }


class TransferEngine:
    """Move money between two accounts as one unit of work.

    The engine holds no locks of its own. Both balance writes are
    conditioned on the version each account was read at, and they are
    committed together with the transaction record, so a transfer that
    loses a race leaves no trace. Losing attempts are reported with
    :class:`ConcurrencyConflictError` and are not retried here; see
    :func:`retry_on_conflict`.

    Parameters
    ----------
    storage : Storage
        Backend providing units of work.
    dispatcher : NotificationDispatcher
        Best-effort publisher invoked after a transfer is committed.
    """

    def __init__(self, storage: Storage, dispatcher: NotificationDispatcher) -> None:
        self.storage = storage
        self.dispatcher = dispatcher

    def execute_transfer(self, request: TransferRequest | None) -> TransactionRecord:
        """Execute a single transfer attempt.

        Parameters
        ----------
        request : TransferRequest | None
            Source, destination and amount.

        Returns
        -------
        TransactionRecord
            The persisted record of the transfer.

        Raises
        ------
        InvalidRequestError
            Missing request, same source and destination, or an amount that
            is not a positive ``Decimal``.
        AccountNotFoundError
            Unknown source or destination account.
        InsufficientFundsError
            Source balance below the amount.
        ConcurrencyConflictError
            Another transfer wrote one of the accounts first.
        PersistenceError
            The storage backend failed.
        """
        self._validate(request)
        try:
            record = self._apply(request)
        except ConcurrencyConflictError:
            logger.warning(
                "Transfer %s -> %s of %s lost a concurrent write",
                request.source_id,
                request.destination_id,
                request.amount,
                extra=_transfer_fields(request),
            )
            raise

        logger.info(
            "Transfer %s committed: %s from account %s to account %s",
            record.transaction_id,
            record.amount,
            record.source_account_id,
            record.destination_account_id,
            extra=_transfer_fields(request, transaction_id=record.transaction_id),
        )
        return record

    def _apply(self, request: TransferRequest) -> TransactionRecord:
        """Read, re-check, write and log inside one unit of work."""
        amount = request.amount
        with self.storage.unit_of_work() as uow:
            source = uow.accounts.get(request.source_id)
            if source is None:
                logger.info("Transfer rejected: source account %s not found", request.source_id)
                raise AccountNotFoundError("source account")
            destination = uow.accounts.get(request.destination_id)
            if destination is None:
                logger.info(
                    "Transfer rejected: destination account %s not found", request.destination_id
                )
                raise AccountNotFoundError("destination account")

            if source.balance < amount:
                logger.info(
                    "Transfer rejected: account %s balance %s below %s",
                    source.account_id,
                    source.balance,
                    amount,
                    extra=_transfer_fields(request),
                )
                raise InsufficientFundsError(
                    f"Account {source.account_id} has insufficient funds for {amount}"
                )

            uow.accounts.update(
                replace(source, balance=subtract_amounts(source.balance, amount)),
                expected_version=source.version,
            )
            uow.accounts.update(
                replace(destination, balance=add_amounts(destination.balance, amount)),
                expected_version=destination.version,
            )

            record = uow.transactions.append(
                TransactionRecord(
                    source_account_id=source.account_id,
                    destination_account_id=destination.account_id,
                    amount=amount,
                )
            )
            message = build_notification(record)
            uow.on_commit(lambda: self.dispatcher.dispatch(message))
        return record

    def _validate(self, request: TransferRequest | None) -> None:
        """Checks that need no storage access, in fail-fast order."""
        if request is None:
            raise InvalidRequestError("transfer request is required")
        if request.source_id == request.destination_id:
            logger.info("Transfer rejected: same account %s", request.source_id)
            raise InvalidRequestError("same account")
        try:
            check_amount(request.amount)
        except InvalidRequestError as e:
            logger.info("Transfer rejected: %s (%r)", e, request.amount)
            raise


def retry_on_conflict(
    engine: TransferEngine,
    request: TransferRequest,
    max_attempts: int = 5,
    base_delay: float = 0.01,
    max_delay: float = 1.0,
) -> TransactionRecord:
    """Re-invoke ``execute_transfer`` while it loses concurrency races.

    Each attempt re-validates and re-reads current balances. Waits
    ``base_delay * 2**attempt`` seconds between attempts, capped at
    ``max_delay``. Errors other than :class:`ConcurrencyConflictError`
    propagate immediately, and so does the conflict from the last attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts - 1):
        try:
            return engine.execute_transfer(request)
        except ConcurrencyConflictError:
            time.sleep(min(base_delay * (2**attempt), max_delay))

    logger.debug("Last of %d attempts", max_attempts, extra=_transfer_fields(request, attempts=max_attempts))
    return engine.execute_transfer(request)
