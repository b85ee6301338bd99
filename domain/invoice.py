"""
Domain: Invoices awaiting payment.

Rules implemented here:
- An Invoice is identified by an opaque, unique payment_id.
- amount_sats is a positive integer (smallest currency unit).
- expires_at = created_at + INVOICE_TTL, always. The TTL is a fixed policy
  constant and not configurable.
- A blank or missing donor name is stored as "Anonymous".
- Invoice state is PENDING until it becomes PAID or EXPIRED; both are terminal.

This module contains only pure domain entities: no I/O, no locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp

INVOICE_TTL_SECONDS: int = 3600
INVOICE_TTL: timedelta = timedelta(seconds=INVOICE_TTL_SECONDS)

ANONYMOUS_DONOR: str = "Anonymous"


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    EXPIRED = "EXPIRED"


def normalize_donor_name(donor_name: Optional[str]) -> str:
    """Trimmed donor name, or "Anonymous" when missing or whitespace-only."""

    if donor_name is None:
        return ANONYMOUS_DONOR
    text = donor_name.strip()
    return text or ANONYMOUS_DONOR


def normalize_recipient(recipient: Optional[str]) -> Optional[str]:
    if recipient is None:
        return None
    text = recipient.strip()
    return text or None


@dataclass(frozen=True, slots=True)
class Invoice:
    """
    Immutable invoice handed to a donor's wallet.

    raw_payload is produced by the invoice encoder and is never inspected here.
    """

    payment_id: str
    amount_sats: int
    donor_name: str
    recipient: Optional[str]
    created_at: datetime
    expires_at: datetime
    raw_payload: str

    def __post_init__(self) -> None:
        if not self.payment_id:
            raise ValueError("payment_id must be a non-empty string")
        if isinstance(self.amount_sats, bool) or not isinstance(self.amount_sats, int):
            raise ValueError("amount_sats must be an integer")
        if self.amount_sats < 1:
            raise ValueError("amount_sats must be >= 1")
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("expires_at", self.expires_at)
        if self.expires_at - self.created_at != INVOICE_TTL:
            raise ValueError(
                f"expires_at must be exactly {INVOICE_TTL_SECONDS}s after created_at"
            )

    def is_expired(self, now: datetime) -> bool:
        """An invoice is expired strictly after expires_at."""

        return now > self.expires_at

    def remaining_seconds(self, now: datetime) -> int:
        """Whole seconds left before expiry, never negative."""

        remaining = (self.expires_at - now).total_seconds()
        return max(0, int(remaining))


@dataclass(frozen=True, slots=True)
class StatusResult:
    """
    Answer to a status check.

    paid_at is set iff status is PAID.
    """

    payment_id: str
    status: InvoiceStatus
    paid_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.status is InvoiceStatus.PAID:
            if self.paid_at is None:
                raise ValueError("paid_at is required when status is PAID")
            require_utc_timestamp("paid_at", self.paid_at)
        elif self.paid_at is not None:
            raise ValueError("paid_at is only allowed when status is PAID")
