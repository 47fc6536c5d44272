"""Generators for account-opening and transfer requests."""

from decimal import Decimal
from typing import Iterator

from instant_payments.generators.base import BaseGenerator
from instant_payments.models import AccountRequest, TransferRequest


class AccountRequestGenerator(BaseGenerator):
    """Generate requests to open accounts for synthetic owners."""

    ACCOUNT_NAMES = ["Checking", "Savings", "Household", "Travel", "Emergency Fund"]
    # Share of requests that leave the name out and get the default
    UNNAMED_RATE = 0.2

    def generate(self) -> AccountRequest:
        """Generate a single account request."""
        account_name = None
        if self.rng.random() >= self.UNNAMED_RATE:
            account_name = self.rng.choice(self.ACCOUNT_NAMES)
        return AccountRequest(owner_name=self.fake.name(), account_name=account_name)

    def generate_batch(self, count: int) -> list[AccountRequest]:
        """Generate ``count`` account requests."""
        return [self.generate() for _ in range(count)]


class TransferRequestGenerator(BaseGenerator):
    """Generate transfer requests with two-decimal amounts."""

    def generate(
        self,
        source_id: int,
        destination_id: int,
        min_amount: Decimal = Decimal("0.01"),
        max_amount: Decimal = Decimal("100.00"),
    ) -> TransferRequest:
        """Generate a transfer between two given accounts.

        Parameters
        ----------
        source_id : int
            Account to debit.
        destination_id : int
            Account to credit.
        min_amount : Decimal
            Smallest amount (inclusive).
        max_amount : Decimal
            Largest amount (inclusive).

        Returns
        -------
        TransferRequest
            Request with an amount in cents between the bounds.
        """
        low = int(min_amount * 100)
        high = int(max_amount * 100)
        cents = self.rng.randint(low, high)
        return TransferRequest(
            source_id=source_id,
            destination_id=destination_id,
            amount=Decimal(cents).scaleb(-2),
        )

    def generate_stream(
        self,
        source_id: int,
        destination_id: int,
        count: int,
        max_amount: Decimal = Decimal("100.00"),
    ) -> Iterator[TransferRequest]:
        """Yield ``count`` transfers between the same two accounts."""
        for _ in range(count):
            yield self.generate(source_id, destination_id, max_amount=max_amount)

    def generate_between(
        self,
        account_ids: list[int],
        max_amount: Decimal = Decimal("100.00"),
    ) -> TransferRequest:
        """Generate a transfer between two distinct accounts picked at random."""
        if len(account_ids) < 2:
            raise ValueError("Need at least two accounts to generate a transfer")
        source_id, destination_id = self.rng.sample(account_ids, 2)
        return self.generate(source_id, destination_id, max_amount=max_amount)
