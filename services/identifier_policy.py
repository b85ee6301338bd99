"""
Identifier and expiry policy.

Pure and stateless:
- new_payment_id(): 32 random bytes, hex-encoded (the shape of a Lightning
  payment hash). Collisions are astronomically unlikely; the lifecycle
  manager still checks for them and regenerates.
- expiry_for(created_at): created_at + INVOICE_TTL (fixed 3600 seconds).
"""

from __future__ import annotations

import secrets
from datetime import datetime

from domain.invoice import INVOICE_TTL
from domain.time import require_utc_timestamp

PAYMENT_ID_BYTES: int = 32


def new_payment_id() -> str:
    """Generate a fresh payment identifier (64 lowercase hex characters)."""

    return secrets.token_hex(PAYMENT_ID_BYTES)


def expiry_for(created_at: datetime) -> datetime:
    """Expiration timestamp for an invoice created at `created_at`."""

    require_utc_timestamp("created_at", created_at)
    return created_at + INVOICE_TTL


__all__ = ["PAYMENT_ID_BYTES", "new_payment_id", "expiry_for"]
