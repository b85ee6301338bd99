"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from domain.donation import AggregateStats, Donation, DonationReceipt
from domain.invoice import Invoice, StatusResult


# ============================================================================
# Invoice Models
# ============================================================================

class CreateInvoiceRequest(BaseModel):
    """Request to create a donation invoice."""
    amount_sats: int = Field(
        ...,
        description="Donation amount in satoshis (1 to 1,000,000)"
    )
    donor_name: Optional[str] = Field(
        None,
        max_length=100,
        description="Display name; blank or missing becomes 'Anonymous'"
    )
    recipient: Optional[str] = Field(
        None,
        max_length=100,
        description="Beneficiary or cause"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "amount_sats": 1000,
                "donor_name": "Ann",
                "recipient": "Shelter"
            }
        }


class CreateInvoiceResponse(BaseModel):
    """Invoice to hand to the donor's wallet."""
    payment_id: str
    invoice: str
    amount_sats: int
    donor_name: str
    recipient: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    expires_in: int

    @classmethod
    def from_invoice(cls, invoice: Invoice, now: datetime) -> "CreateInvoiceResponse":
        return cls(
            payment_id=invoice.payment_id,
            invoice=invoice.raw_payload,
            amount_sats=invoice.amount_sats,
            donor_name=invoice.donor_name,
            recipient=invoice.recipient,
            created_at=invoice.created_at,
            expires_at=invoice.expires_at,
            expires_in=invoice.remaining_seconds(now),
        )

    class Config:
        json_schema_extra = {
            "example": {
                "payment_id": "9f1c0d3e5b7a...",
                "invoice": "lnbc10000n1-placeholder-9f1c0d3e5b7a0c1d",
                "amount_sats": 1000,
                "donor_name": "Ann",
                "recipient": "Shelter",
                "created_at": "2025-01-01T12:00:00Z",
                "expires_at": "2025-01-01T13:00:00Z",
                "expires_in": 3600
            }
        }


class PaymentStatusResponse(BaseModel):
    """Current state of an invoice."""
    payment_id: str
    status: Literal["PENDING", "PAID", "EXPIRED"]
    paid_at: Optional[datetime] = None

    @classmethod
    def from_result(cls, result: StatusResult) -> "PaymentStatusResponse":
        return cls(payment_id=result.payment_id, status=result.status.value, paid_at=result.paid_at)


# ============================================================================
# Donation Models
# ============================================================================

class DonationStatsResponse(BaseModel):
    """Aggregate totals over all completed donations."""
    total_sats: int
    donor_count: int

    @classmethod
    def from_stats(cls, stats: AggregateStats) -> "DonationStatsResponse":
        return cls(total_sats=stats.total_amount_sats, donor_count=stats.donor_count)

    class Config:
        json_schema_extra = {
            "example": {
                "total_sats": 21000,
                "donor_count": 7
            }
        }


class DonationResponse(BaseModel):
    """Single completed donation."""
    id: str
    donor_name: str
    recipient: Optional[str] = None
    amount_sats: int
    status: Literal["PAID"] = "PAID"
    paid_at: datetime

    @classmethod
    def from_donation(cls, donation: Donation) -> "DonationResponse":
        return cls(
            id=donation.donation_id,
            donor_name=donation.donor_name,
            recipient=donation.recipient,
            amount_sats=donation.amount_sats,
            paid_at=donation.paid_at,
        )


class DonationReceiptResponse(BaseModel):
    """Receipt for a completed donation."""
    id: str
    payment_id: str
    donor_name: str
    recipient: Optional[str] = None
    amount_sats: int
    paid_at: datetime
    transaction_id: str
    network: str

    @classmethod
    def from_receipt(cls, receipt: DonationReceipt) -> "DonationReceiptResponse":
        return cls(
            id=receipt.donation_id,
            payment_id=receipt.payment_id,
            donor_name=receipt.donor_name,
            recipient=receipt.recipient,
            amount_sats=receipt.amount_sats,
            paid_at=receipt.paid_at,
            transaction_id=receipt.transaction_id,
            network=receipt.network,
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Payment oracle unavailable",
                "detail": "LND lookup failed; retry shortly",
                "status_code": 503
            }
        }
