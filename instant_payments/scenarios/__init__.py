"""Scenarios exercising the transfer engine under load."""

from instant_payments.scenarios.contention import ContentionReport, ContentionScenario

__all__ = ["ContentionReport", "ContentionScenario"]
