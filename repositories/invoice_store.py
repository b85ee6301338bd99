"""
Invoice repository (in-memory persistence).

Holds invoices that are still awaiting payment, keyed by payment_id. This
module provides *only* storage operations: it does not decide when an invoice
is paid or expired. Lookups are by exact key; no ordering is kept.

All operations are thread-safe. The internal lock only guards the dictionary
itself and is never held while calling out of this module.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional

from domain.errors import DuplicatePaymentIdError
from domain.invoice import Invoice


class InvoiceStore:
    """Pending invoices keyed by payment_id."""

    def __init__(self) -> None:
        self._invoices: Dict[str, Invoice] = {}
        self._lock = threading.Lock()

    def put(self, invoice: Invoice) -> None:
        """
        Insert a new invoice.

        Raises:
            DuplicatePaymentIdError: if the payment_id is already stored
        """

        with self._lock:
            if invoice.payment_id in self._invoices:
                raise DuplicatePaymentIdError(invoice.payment_id)
            self._invoices[invoice.payment_id] = invoice

    def get(self, payment_id: str) -> Optional[Invoice]:
        with self._lock:
            return self._invoices.get(payment_id)

    def remove(self, payment_id: str) -> None:
        """Delete an invoice; a no-op when it is already gone."""

        with self._lock:
            self._invoices.pop(payment_id, None)

    def list_expired_ids(self, now: datetime) -> List[str]:
        """payment_ids of invoices with now > expires_at (snapshot)."""

        with self._lock:
            return [
                payment_id
                for payment_id, invoice in self._invoices.items()
                if invoice.is_expired(now)
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._invoices)


__all__ = ["InvoiceStore"]
