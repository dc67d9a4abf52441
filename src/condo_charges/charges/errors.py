"""Errors raised by the charge reconciliation engine."""


class ChargesError(Exception):
    """Base class for charge engine errors."""


class SourceUnavailable(ChargesError):
    """A dependent read failed or returned nothing.

    Never escapes ``ChargeReconciliationService.reconcile``; the orchestrator
    substitutes a default or an empty collection instead.
    """

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        message = f"Source '{source}' unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidReferenceMonth(ChargesError, ValueError):
    """A reference month is not a valid zero-padded ``YYYY-MM`` string."""


class ChargeNotPayable(ChargesError):
    """The selected month has no visible pending or overdue charge."""


class SettlementUnavailable(ChargesError):
    """Settlement data (payee key) cannot be supplied for the account."""
