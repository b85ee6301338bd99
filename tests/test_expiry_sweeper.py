"""
Tests for `services/expiry_sweeper.py`.

Covers rules:
- The sweeper periodically removes expired invoices.
- It keeps running after a failed sweep.
- Stopping is clean and idempotent.
"""

from __future__ import annotations

import threading
import time

import pytest

from services.expiry_sweeper import ExpirySweeper
from services.lifecycle_manager import DonationLifecycleManager

from conftest import FakeClock


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_sweeper_removes_expired_invoices(manager: DonationLifecycleManager, clock: FakeClock) -> None:
    manager.create_invoice(100)
    manager.create_invoice(200)
    clock.advance(3601)

    sweeper = ExpirySweeper(manager, interval_seconds=0.02)
    sweeper.start()
    try:
        assert _wait_for(lambda: manager.pending_invoice_count() == 0)
        assert sweeper.running is True
    finally:
        sweeper.stop(timeout=2)

    assert sweeper.running is False
    sweeper.stop(timeout=2)


def test_sweeper_survives_failures() -> None:
    calls = []
    ready = threading.Event()

    class FlakyManager:
        def sweep_expired(self) -> int:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("transient")
            ready.set()
            return 0

    sweeper = ExpirySweeper(FlakyManager(), interval_seconds=0.01)  # type: ignore[arg-type]
    sweeper.start()
    try:
        assert ready.wait(timeout=2) is True
    finally:
        sweeper.stop(timeout=2)

    assert len(calls) >= 2


def test_sweeper_requires_positive_interval(manager: DonationLifecycleManager) -> None:
    with pytest.raises(ValueError):
        ExpirySweeper(manager, interval_seconds=0)
