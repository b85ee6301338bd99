"""
Domain: error taxonomy for the invoice & donation lifecycle.

- InvalidAmountError: caller input error, not retryable as-is.
- DuplicatePaymentIdError: identifier collision in the Invoice Store; recovered
  internally by generating a new identifier and never surfaced to callers.
- PaymentNotFoundError: the payment identifier was never issued (or its
  unpaid invoice has already been cleaned up).
- OracleUnavailableError: the payment oracle could not answer; transient, the
  caller should poll again later. Never equivalent to "not yet paid".
- LedgerUnavailableError: the ledger backend failed; transient.
"""

from __future__ import annotations


class DonationError(Exception):
    """Base class for lifecycle errors."""
    pass


class InvalidAmountError(DonationError, ValueError):
    """Raised when an invoice amount is not an integer within the allowed range."""

    def __init__(self, amount: object, minimum: int, maximum: int) -> None:
        super().__init__(
            f"amount_sats must be an integer between {minimum} and {maximum}, got {amount!r}"
        )
        self.amount = amount
        self.minimum = minimum
        self.maximum = maximum


class DuplicatePaymentIdError(DonationError):
    """Raised by the Invoice Store when a payment_id is already present."""

    def __init__(self, payment_id: str) -> None:
        super().__init__(f"payment_id already exists: {payment_id}")
        self.payment_id = payment_id


class PaymentNotFoundError(DonationError, LookupError):
    """Raised when a payment_id is unknown to both the Invoice Store and the ledger."""

    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Unknown payment_id: {payment_id}")
        self.payment_id = payment_id


class OracleUnavailableError(DonationError):
    """Raised when the payment oracle cannot be reached or gives an unusable answer."""
    pass


class LedgerUnavailableError(DonationError, RuntimeError):
    """Raised when the ledger backend fails to read or write."""
    pass


__all__ = [
    "DonationError",
    "InvalidAmountError",
    "DuplicatePaymentIdError",
    "PaymentNotFoundError",
    "OracleUnavailableError",
    "LedgerUnavailableError",
]
