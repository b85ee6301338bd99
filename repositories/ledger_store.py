"""
Ledger repository (persistence contract + in-memory implementation).

The ledger is append-only: donations are inserted once and never updated or
deleted. `append_if_absent` is the only write and is an atomic
compare-and-insert keyed by payment_id, which is what makes promotion of a
paid invoice idempotent.

Aggregate statistics are kept incrementally by the in-memory store, updated
under the same lock as the append so readers never observe a donation without
its effect on the totals (or the reverse).
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Protocol, Tuple

from domain.donation import AggregateStats, Donation


class LedgerStore(Protocol):
    def append_if_absent(self, donation: Donation) -> Tuple[Donation, bool]:
        """
        Record a donation unless one already exists for its payment_id.

        Returns:
            (stored donation, inserted) where stored donation is the existing
            record when inserted is False
        """
        ...

    def get_by_payment_id(self, payment_id: str) -> Optional[Donation]:
        ...

    def stats(self) -> AggregateStats:
        ...

    def recent(self, limit: int) -> List[Donation]:
        """Most-recent-first by paid_at, ties broken by later insertion first."""
        ...


class InMemoryLedgerStore:
    """Process-local ledger. Suitable for a single service instance."""

    def __init__(self) -> None:
        self._donations: List[Donation] = []
        self._by_payment_id: Dict[str, Donation] = {}
        self._stats = AggregateStats()
        self._lock = threading.Lock()

    def append_if_absent(self, donation: Donation) -> Tuple[Donation, bool]:
        with self._lock:
            existing = self._by_payment_id.get(donation.payment_id)
            if existing is not None:
                return existing, False
            self._donations.append(donation)
            self._by_payment_id[donation.payment_id] = donation
            self._stats = self._stats.plus(donation)
            return donation, True

    def get_by_payment_id(self, payment_id: str) -> Optional[Donation]:
        with self._lock:
            return self._by_payment_id.get(payment_id)

    def stats(self) -> AggregateStats:
        with self._lock:
            return self._stats

    def recent(self, limit: int) -> List[Donation]:
        if limit <= 0:
            return []
        with self._lock:
            indexed = list(enumerate(self._donations))
        indexed.sort(key=lambda pair: (pair[1].paid_at, pair[0]), reverse=True)
        return [donation for _, donation in indexed[:limit]]

    def all(self) -> List[Donation]:
        """Snapshot of every donation in insertion order."""

        with self._lock:
            return list(self._donations)


__all__ = ["LedgerStore", "InMemoryLedgerStore"]
