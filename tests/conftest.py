"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides a controllable clock plus a
scripted payment oracle.
"""

from __future__ import annotations

import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add the project directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.errors import OracleUnavailableError  # noqa: E402
from repositories.invoice_store import InvoiceStore  # noqa: E402
from repositories.ledger_store import InMemoryLedgerStore  # noqa: E402
from services.invoice_encoder import PlaceholderInvoiceEncoder  # noqa: E402
from services.lifecycle_manager import DonationLifecycleManager  # noqa: E402
from services.payment_oracle import PaymentCheck  # noqa: E402

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(seconds=seconds)
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = value


class ScriptedOracle:
    """Payment oracle whose answers are set by the test."""

    def __init__(self) -> None:
        self._paid: Dict[str, Optional[datetime]] = {}
        self.unavailable = False
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def mark_paid(self, payment_id: str, paid_at: Optional[datetime] = None) -> None:
        with self._lock:
            self._paid[payment_id] = paid_at

    def is_paid(self, payment_id: str) -> PaymentCheck:
        with self._lock:
            self.calls.append(payment_id)
            if self.unavailable:
                raise OracleUnavailableError("oracle offline")
            if payment_id in self._paid:
                return PaymentCheck(paid=True, paid_at=self._paid[payment_id])
            return PaymentCheck(paid=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def invoice_store() -> InvoiceStore:
    return InvoiceStore()


@pytest.fixture
def ledger() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def manager(
    clock: FakeClock,
    oracle: ScriptedOracle,
    invoice_store: InvoiceStore,
    ledger: InMemoryLedgerStore,
) -> DonationLifecycleManager:
    return DonationLifecycleManager(
        invoice_store=invoice_store,
        ledger_store=ledger,
        oracle=oracle,
        encoder=PlaceholderInvoiceEncoder(),
        clock=clock,
    )
