"""
Domain: Donations, aggregate statistics and receipts.

Rules implemented here:
- A Donation is the durable record of a paid Invoice. donor_name, recipient
  and amount_sats are copied from the Invoice at promotion time.
- A Donation keeps the originating payment_id; at most one Donation exists
  per payment_id.
- Donations are immutable once recorded.
- AggregateStats always equals a scan of the ledger:
  total_amount_sats = sum(amount_sats), donor_count = number of donations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .invoice import Invoice
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Donation:
    """Immutable ledger entry for a completed donation."""

    donation_id: str
    payment_id: str
    donor_name: str
    recipient: Optional[str]
    amount_sats: int
    paid_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("paid_at", self.paid_at)
        if self.amount_sats < 1:
            raise ValueError("amount_sats must be >= 1")

    @staticmethod
    def from_invoice(invoice: Invoice, *, donation_id: str, paid_at: datetime) -> "Donation":
        return Donation(
            donation_id=donation_id,
            payment_id=invoice.payment_id,
            donor_name=invoice.donor_name,
            recipient=invoice.recipient,
            amount_sats=invoice.amount_sats,
            paid_at=paid_at,
        )


@dataclass(frozen=True, slots=True)
class AggregateStats:
    total_amount_sats: int = 0
    donor_count: int = 0

    def plus(self, donation: Donation) -> "AggregateStats":
        return AggregateStats(
            total_amount_sats=self.total_amount_sats + donation.amount_sats,
            donor_count=self.donor_count + 1,
        )

    @staticmethod
    def from_donations(donations: Iterable[Donation]) -> "AggregateStats":
        stats = AggregateStats()
        for donation in donations:
            stats = stats.plus(donation)
        return stats


@dataclass(frozen=True, slots=True)
class DonationReceipt:
    """
    Receipt for a completed donation.

    Built only from a recorded Donation; there is no receipt for an unpaid or
    unknown payment_id. transaction_id is the payment identifier the payment
    settled against.
    """

    donation_id: str
    payment_id: str
    donor_name: str
    recipient: Optional[str]
    amount_sats: int
    paid_at: datetime
    transaction_id: str
    network: str

    @staticmethod
    def from_donation(donation: Donation, *, network: str) -> "DonationReceipt":
        return DonationReceipt(
            donation_id=donation.donation_id,
            payment_id=donation.payment_id,
            donor_name=donation.donor_name,
            recipient=donation.recipient,
            amount_sats=donation.amount_sats,
            paid_at=donation.paid_at,
            transaction_id=donation.payment_id,
            network=network,
        )
