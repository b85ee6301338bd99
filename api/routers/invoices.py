"""
Invoices API Endpoints.

Endpoints for creating donation invoices and polling their payment status.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_manager
from api.models import (
    CreateInvoiceRequest,
    CreateInvoiceResponse,
    ErrorResponse,
    PaymentStatusResponse,
)
from services.lifecycle_manager import DonationLifecycleManager

router = APIRouter()


@router.post(
    "/invoices",
    response_model=CreateInvoiceResponse,
    status_code=201,
    summary="Create Donation Invoice",
    description="Create a Lightning invoice for a donation. Invoices expire after one hour.",
    responses={400: {"model": ErrorResponse}},
)
def create_invoice(
    request: CreateInvoiceRequest,
    manager: DonationLifecycleManager = Depends(get_manager),
):
    """
    Create a donation invoice.

    **How it works:**
    1. Validates the amount (1 to 1,000,000 sats)
    2. Issues a unique payment id and a payment request for the wallet
    3. Returns the invoice, valid for 3600 seconds

    Nothing is recorded as a donation until the invoice is paid and its
    status is checked.

    **Example request:**
    ```json
    {
      "amount_sats": 1000,
      "donor_name": "Ann",
      "recipient": "Shelter"
    }
    ```
    """
    invoice = manager.create_invoice(
        request.amount_sats,
        donor_name=request.donor_name,
        recipient=request.recipient,
    )
    return CreateInvoiceResponse.from_invoice(invoice, manager.clock())


@router.get(
    "/invoices/{payment_id}/status",
    response_model=PaymentStatusResponse,
    summary="Check Payment Status",
    description="Poll an invoice: PENDING, PAID or EXPIRED.",
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def check_payment_status(
    payment_id: str,
    manager: DonationLifecycleManager = Depends(get_manager),
):
    """
    Check whether an invoice has been paid.

    **Responses:**
    - `PENDING`: still waiting for payment, poll again
    - `PAID`: payment confirmed, `paid_at` is set; repeated polls return the same `paid_at`
    - `EXPIRED`: the invoice lapsed unpaid, create a new one
    - HTTP 404: unknown payment id
    - HTTP 503: the payment oracle could not be reached, retry later
      (this is *not* the same as PENDING)
    """
    result = manager.check_status(payment_id)
    return PaymentStatusResponse.from_result(result)
