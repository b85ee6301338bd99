"""
Donations API Endpoints.

Read-only views over the donation ledger: totals, recent activity, receipts.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_manager, get_settings
from api.models import (
    DonationReceiptResponse,
    DonationResponse,
    DonationStatsResponse,
    ErrorResponse,
)
from api.settings import Settings
from services.lifecycle_manager import DonationLifecycleManager

router = APIRouter()

MAX_RECENT_LIMIT = 100


@router.get(
    "/donations/stats",
    response_model=DonationStatsResponse,
    summary="Donation Statistics",
    description="Total satoshis donated and number of donations.",
)
def get_donation_stats(manager: DonationLifecycleManager = Depends(get_manager)):
    return DonationStatsResponse.from_stats(manager.get_stats())


@router.get(
    "/donations/recent",
    response_model=List[DonationResponse],
    summary="Recent Donations",
    description="Most recently paid donations first.",
)
def get_recent_donations(
    limit: Optional[int] = Query(None, ge=1, le=MAX_RECENT_LIMIT),
    manager: DonationLifecycleManager = Depends(get_manager),
    settings: Settings = Depends(get_settings),
):
    """
    List recent donations.

    `limit` defaults to the configured RECENT_DONATIONS_DEFAULT (10).
    """
    effective_limit = limit if limit is not None else settings.recent_donations_default
    donations = manager.get_recent_donations(min(effective_limit, MAX_RECENT_LIMIT))
    return [DonationResponse.from_donation(donation) for donation in donations]


@router.get(
    "/donations/{payment_id}/receipt",
    response_model=DonationReceiptResponse,
    summary="Donation Receipt",
    description="Receipt for a completed donation.",
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def get_donation_receipt(
    payment_id: str,
    manager: DonationLifecycleManager = Depends(get_manager),
):
    """
    Fetch the receipt for a paid invoice.

    Receipts only exist for recorded donations. An unpaid or unknown payment
    id returns 404; a ledger failure returns 503. No placeholder receipt is
    ever returned.
    """
    return DonationReceiptResponse.from_receipt(manager.get_receipt(payment_id))
