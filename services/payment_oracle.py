"""
Payment oracle adapters.

The oracle answers one question: has payment_id X been paid? It is the only
source of truth for settlement; the lifecycle manager consumes its answer and
never guesses.

Contract:
- is_paid(payment_id) -> PaymentCheck(paid, paid_at)
- raises OracleUnavailableError when no trustworthy answer can be given.
  Unavailability must never be reported as "not paid".

Adapters:
- LndRestPaymentOracle: queries an LND node over its REST interface.
- SimulatedPaymentOracle: deterministic stand-in that reports an invoice paid
  on the Nth poll. Used for demos and tests.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Protocol

import httpx

from domain.errors import OracleUnavailableError
from domain.time import Clock, parse_utc_datetime, require_utc_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PaymentCheck:
    """Oracle answer. paid_at is the settlement time when the oracle knows it."""

    paid: bool
    paid_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.paid_at is not None:
            require_utc_timestamp("paid_at", self.paid_at)
            if not self.paid:
                raise ValueError("paid_at is only meaningful for a paid check")


class PaymentOracle(Protocol):
    def is_paid(self, payment_id: str) -> PaymentCheck:
        ...


def load_macaroon_hex(macaroon_path: str) -> str:
    """Read an LND macaroon file and return it hex-encoded for the REST header."""

    path = Path(macaroon_path)
    if not path.is_file():
        raise RuntimeError(f"Macaroon not found at {macaroon_path}")
    return path.read_bytes().hex()


class LndRestPaymentOracle:
    """
    Payment oracle backed by LND's REST API.

    Looks invoices up with `GET /v1/invoice/{payment_hash}`:
    - `settled` true (or `state` == "SETTLED") -> paid, with `settle_date`
    - HTTP 404 -> the node has no such invoice, reported as not paid
    - transport errors, timeouts, other non-2xx statuses or an unreadable
      body -> OracleUnavailableError
    """

    def __init__(
        self,
        host: str,
        macaroon_hex: str,
        *,
        tls_cert_path: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = host if host.startswith(("http://", "https://")) else f"https://{host}"
        self._headers = {"Grpc-Metadata-macaroon": macaroon_hex}
        self._client = client or httpx.Client(
            timeout=timeout,
            verify=tls_cert_path if tls_cert_path else True,
        )

    def is_paid(self, payment_id: str) -> PaymentCheck:
        url = f"{self._base_url}/v1/invoice/{payment_id}"
        try:
            response = self._client.get(url, headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning(
                "LND lookup failed",
                extra={"payment_id": payment_id, "error": str(e)},
            )
            raise OracleUnavailableError(f"LND lookup failed for {payment_id}: {e}") from e

        if response.status_code == 404:
            return PaymentCheck(paid=False)

        if response.status_code != 200:
            logger.warning(
                "LND lookup returned unexpected status",
                extra={"payment_id": payment_id, "status_code": response.status_code},
            )
            raise OracleUnavailableError(
                f"LND lookup for {payment_id} returned HTTP {response.status_code}"
            )

        try:
            invoice = response.json()
        except ValueError as e:
            raise OracleUnavailableError(f"LND returned an unreadable body for {payment_id}") from e

        settled = bool(invoice.get("settled")) or invoice.get("state") == "SETTLED"
        if not settled:
            return PaymentCheck(paid=False)

        settle_date = invoice.get("settle_date")
        paid_at = None
        if settle_date not in (None, "", "0", 0):
            paid_at = parse_utc_datetime(settle_date)
        return PaymentCheck(paid=True, paid_at=paid_at)

    def close(self) -> None:
        self._client.close()


class SimulatedPaymentOracle:
    """
    Deterministic oracle: a payment_id is reported paid from its Nth poll on.

    The settlement time is fixed at the poll that first reported it, so every
    later poll returns the same paid_at.
    """

    def __init__(self, paid_after_polls: int = 2, clock: Clock = utc_now) -> None:
        if paid_after_polls < 1:
            raise ValueError("paid_after_polls must be >= 1")
        self._paid_after_polls = paid_after_polls
        self._clock = clock
        self._polls: Dict[str, int] = {}
        self._settled: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def is_paid(self, payment_id: str) -> PaymentCheck:
        with self._lock:
            settled_at = self._settled.get(payment_id)
            if settled_at is not None:
                return PaymentCheck(paid=True, paid_at=settled_at)

            polls = self._polls.get(payment_id, 0) + 1
            self._polls[payment_id] = polls
            if polls < self._paid_after_polls:
                return PaymentCheck(paid=False)

            settled_at = self._clock()
            self._settled[payment_id] = settled_at
            del self._polls[payment_id]
            return PaymentCheck(paid=True, paid_at=settled_at)

    def poll_count(self, payment_id: str) -> int:
        with self._lock:
            return self._polls.get(payment_id, 0)


__all__ = [
    "PaymentCheck",
    "PaymentOracle",
    "LndRestPaymentOracle",
    "SimulatedPaymentOracle",
    "load_macaroon_hex",
]
