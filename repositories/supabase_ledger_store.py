"""
Donation ledger repository backed by Supabase.

Persistence only: inserts and reads donation rows. Expected table schema
(default name `donations`):

    seq             bigint generated always as identity
    donation_id     text primary key
    payment_id      text not null unique
    donor_name      text not null
    recipient       text
    amount_sats     bigint not null check (amount_sats >= 1)
    paid_at_utc     timestamptz not null
    created_at_utc  timestamptz not null default now()

The unique constraint on payment_id is what makes `append_if_absent` an
atomic compare-and-insert across service instances: the insert is an upsert
that ignores conflicts, followed by a read of whichever row won.

Aggregate statistics are derived by scanning amount_sats on read, page by
page, so they can never disagree with the rows.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Tuple

import httpx
from postgrest.exceptions import APIError

from domain.donation import AggregateStats, Donation
from domain.errors import LedgerUnavailableError
from domain.time import parse_utc_datetime, require_utc_timestamp

logger = logging.getLogger(__name__)

# Keep this aligned with your database schema.
_DONATIONS_TABLE: str = "donations"
_STATS_PAGE_SIZE: int = 1000


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _row_to_donation(row: Mapping[str, Any]) -> Donation:
    """Convert a Supabase row into a Donation."""

    return Donation(
        donation_id=str(row["donation_id"]),
        payment_id=str(row["payment_id"]),
        donor_name=str(row["donor_name"]),
        recipient=row.get("recipient"),
        amount_sats=int(row["amount_sats"]),
        paid_at=parse_utc_datetime(row["paid_at_utc"]),
    )


class SupabaseLedgerStore:
    """LedgerStore implementation over a Supabase table."""

    def __init__(self, client: Any, table: str = _DONATIONS_TABLE) -> None:
        self._client = client
        self._table = table

    def _execute(self, action: str, build: Callable[[Any], Any]) -> List[Mapping[str, Any]]:
        try:
            response = build(self._client.table(self._table)).execute()
        except (APIError, httpx.HTTPError) as e:
            raise LedgerUnavailableError(f"Failed to {action}: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise LedgerUnavailableError(f"Failed to {action}: {error}")

        return getattr(response, "data", None) or []

    def append_if_absent(self, donation: Donation) -> Tuple[Donation, bool]:
        payload: dict[str, Any] = {
            "donation_id": donation.donation_id,
            "payment_id": donation.payment_id,
            "donor_name": donation.donor_name,
            "recipient": donation.recipient,
            "amount_sats": donation.amount_sats,
            "paid_at_utc": _to_iso_utc(donation.paid_at, name="paid_at"),
        }

        rows = self._execute(
            "record donation",
            lambda table: table.upsert(payload, on_conflict="payment_id", ignore_duplicates=True),
        )
        if any(str(row.get("donation_id")) == donation.donation_id for row in rows):
            return donation, True

        existing = self.get_by_payment_id(donation.payment_id)
        if existing is None:
            raise LedgerUnavailableError(
                f"Failed to record donation: no row stored for payment_id {donation.payment_id}"
            )
        logger.info(
            "Donation already recorded for payment_id",
            extra={"payment_id": donation.payment_id, "donation_id": existing.donation_id},
        )
        return existing, False

    def get_by_payment_id(self, payment_id: str) -> Optional[Donation]:
        rows = self._execute(
            "get donation",
            lambda table: table.select("*").eq("payment_id", payment_id).limit(1),
        )
        if not rows:
            return None
        return _row_to_donation(rows[0])

    def stats(self) -> AggregateStats:
        total_amount_sats = 0
        donor_count = 0
        offset = 0

        # PostgREST caps each response (1000 rows by default), so page by seq
        # until a page comes back empty.
        while True:
            rows = self._execute(
                "read donation stats",
                lambda table, start=offset: (
                    table.select("amount_sats")
                    .order("seq")
                    .range(start, start + _STATS_PAGE_SIZE - 1)
                ),
            )
            if not rows:
                break
            total_amount_sats += sum(int(row["amount_sats"]) for row in rows)
            donor_count += len(rows)
            offset += len(rows)

        return AggregateStats(total_amount_sats=total_amount_sats, donor_count=donor_count)

    def recent(self, limit: int) -> List[Donation]:
        if limit <= 0:
            return []
        rows = self._execute(
            "list recent donations",
            lambda table: (
                table.select("*")
                .order("paid_at_utc", desc=True)
                .order("seq", desc=True)
                .limit(limit)
            ),
        )
        return [_row_to_donation(row) for row in rows]


__all__ = ["SupabaseLedgerStore"]
