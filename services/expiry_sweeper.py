"""
Periodic expiry sweep.

Expiry is observed lazily by status checks; this sweeper only bounds memory
held by invoices nobody polls again. It runs DonationLifecycleManager.sweep_expired
on a daemon thread every `interval_seconds`.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from services.lifecycle_manager import DonationLifecycleManager

logger = logging.getLogger(__name__)


class ExpirySweeper:
    def __init__(self, manager: DonationLifecycleManager, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._manager = manager
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="invoice-expiry-sweeper", daemon=True)
        self._thread.start()
        logger.info("Expiry sweeper started", extra={"interval_seconds": self._interval})

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Expiry sweeper stopped")

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self._manager.sweep_expired()
            except Exception:
                # Keep sweeping; the next tick retries.
                logger.exception("Expiry sweep failed")


__all__ = ["ExpirySweeper"]
