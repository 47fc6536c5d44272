"""Synthetic request generators for demos and load tests."""

from instant_payments.generators.requests import AccountRequestGenerator, TransferRequestGenerator

__all__ = ["AccountRequestGenerator", "TransferRequestGenerator"]
