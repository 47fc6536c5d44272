"""Account lifecycle operations: open, look up, deposit."""

import logging
from dataclasses import replace
from decimal import Decimal

from instant_payments.exceptions import AccountNotFoundError, InvalidRequestError
from instant_payments.models import DEFAULT_ACCOUNT_NAME, Account, add_amounts, check_amount
from instant_payments.store.base import Storage

logger = logging.getLogger(__name__)


class AccountService:
    """Single-account operations sharing the transfer engine's storage."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def create_account(self, account_name: str | None, owner_name: str) -> Account:
        """Open a zero-balance account.

        A missing or blank ``account_name`` falls back to
        ``"Default Account"``; ``owner_name`` is required.
        """
        if not owner_name or not owner_name.strip():
            raise InvalidRequestError("owner name is required")
        if not account_name or not account_name.strip():
            account_name = DEFAULT_ACCOUNT_NAME

        with self.storage.unit_of_work() as uow:
            account = uow.accounts.add(
                Account(
                    account_id=None,
                    owner_name=owner_name,
                    account_name=account_name,
                    balance=Decimal("0"),
                )
            )
        logger.info("Account %s opened for %s", account.account_id, owner_name)
        return account

    def get_account(self, account_id: int) -> Account:
        """Return the current snapshot of an account."""
        with self.storage.unit_of_work() as uow:
            account = uow.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError("account")
        return account

    def deposit(self, account_id: int, amount: Decimal) -> Account:
        """Credit ``amount`` to one account with a conditioned write."""
        check_amount(amount)

        with self.storage.unit_of_work() as uow:
            account = uow.accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError("account")
            updated = uow.accounts.update(
                replace(account, balance=add_amounts(account.balance, amount)),
                expected_version=account.version,
            )
        logger.info("Deposited %s to account %s", amount, account_id)
        return updated
