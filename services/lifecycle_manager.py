"""
Invoice & donation lifecycle manager.

Handles:
- Invoice creation (amount validation, unique payment ids, fixed expiry)
- Status checks (PENDING / PAID / EXPIRED) with lazy expiry
- Promotion of a paid invoice into exactly one Donation
- Statistics, recent donations and receipts read from the ledger

Status check rules, evaluated on every call:
1. A Donation exists for the payment_id -> PAID (pure read).
2. No pending invoice either -> PaymentNotFoundError.
3. now > expires_at -> invoice removed, EXPIRED.
4. Ask the payment oracle. Paid -> promote (append to ledger if absent,
   remove invoice) and return PAID. Not paid -> PENDING.

Concurrency:
- The oracle is always consulted *outside* any lock.
- State transitions for one payment_id run inside a per-key critical section,
  so concurrent polls of the same invoice promote it once. Different
  payment_ids never wait on each other.
- The ledger's compare-and-insert on payment_id is a second guard that also
  holds across service instances.
- Oracle failures propagate as OracleUnavailableError with no state change.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional
from uuid import uuid4

from domain.donation import AggregateStats, Donation, DonationReceipt
from domain.errors import DuplicatePaymentIdError, InvalidAmountError, PaymentNotFoundError
from domain.invoice import (
    Invoice,
    InvoiceStatus,
    StatusResult,
    normalize_donor_name,
    normalize_recipient,
)
from domain.time import Clock, utc_now
from repositories.invoice_store import InvoiceStore
from repositories.ledger_store import LedgerStore
from services.identifier_policy import expiry_for, new_payment_id
from services.invoice_encoder import InvoiceEncoder, describe_donation
from services.keyed_lock import KeyedLock
from services.payment_oracle import PaymentCheck, PaymentOracle

logger = logging.getLogger(__name__)

MIN_AMOUNT_SATS: int = 1
MAX_AMOUNT_SATS: int = 1_000_000
MAX_PAYMENT_ID_ATTEMPTS: int = 5


def validate_amount(amount_sats: object) -> int:
    """
    Check that an amount is an integer in [MIN_AMOUNT_SATS, MAX_AMOUNT_SATS].

    Raises:
        InvalidAmountError: for non-integers (including bool) or out-of-range values
    """

    if isinstance(amount_sats, bool) or not isinstance(amount_sats, int):
        raise InvalidAmountError(amount_sats, MIN_AMOUNT_SATS, MAX_AMOUNT_SATS)
    if not MIN_AMOUNT_SATS <= amount_sats <= MAX_AMOUNT_SATS:
        raise InvalidAmountError(amount_sats, MIN_AMOUNT_SATS, MAX_AMOUNT_SATS)
    return amount_sats


class DonationLifecycleManager:
    """
    Owns the Invoice Store and Ledger Store for one process.

    Construct once at service start; there is no implicit reset.
    """

    def __init__(
        self,
        *,
        invoice_store: InvoiceStore,
        ledger_store: LedgerStore,
        oracle: PaymentOracle,
        encoder: InvoiceEncoder,
        clock: Clock = utc_now,
        payment_id_factory: Callable[[], str] = new_payment_id,
        donation_id_factory: Callable[[], str] = lambda: str(uuid4()),
        default_recipient: str = "SatsForGood",
        network: str = "mainnet",
    ) -> None:
        self._invoices = invoice_store
        self._ledger = ledger_store
        self._oracle = oracle
        self._encoder = encoder
        self._clock = clock
        self._new_payment_id = payment_id_factory
        self._new_donation_id = donation_id_factory
        self._default_recipient = default_recipient
        self._network = network
        self._locks = KeyedLock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def create_invoice(
        self,
        amount_sats: int,
        donor_name: Optional[str] = None,
        recipient: Optional[str] = None,
    ) -> Invoice:
        """
        Create and store a new pending invoice.

        Expired invoices are swept first so abandoned ones do not pile up.

        Raises:
            InvalidAmountError: if amount_sats is not an integer in [1, 1_000_000]
        """

        amount_sats = validate_amount(amount_sats)
        donor = normalize_donor_name(donor_name)
        target = normalize_recipient(recipient)

        self.sweep_expired()

        description = describe_donation(amount_sats, target or self._default_recipient)

        for attempt in range(1, MAX_PAYMENT_ID_ATTEMPTS + 1):
            payment_id = self._new_payment_id()
            if self._ledger.get_by_payment_id(payment_id) is not None:
                logger.warning(
                    "Generated payment_id already used by a donation, regenerating",
                    extra={"payment_id": payment_id, "attempt": attempt},
                )
                continue

            created_at = self._clock()
            invoice = Invoice(
                payment_id=payment_id,
                amount_sats=amount_sats,
                donor_name=donor,
                recipient=target,
                created_at=created_at,
                expires_at=expiry_for(created_at),
                raw_payload=self._encoder.encode(amount_sats, payment_id, description),
            )

            try:
                self._invoices.put(invoice)
            except DuplicatePaymentIdError:
                logger.warning(
                    "Generated payment_id already pending, regenerating",
                    extra={"payment_id": payment_id, "attempt": attempt},
                )
                continue

            logger.info(
                f"Created invoice for {amount_sats} sats to {target or self._default_recipient}",
                extra={"payment_id": payment_id, "amount_sats": amount_sats},
            )
            return invoice

        raise RuntimeError(
            f"Could not allocate a unique payment_id after {MAX_PAYMENT_ID_ATTEMPTS} attempts"
        )

    def check_status(self, payment_id: str) -> StatusResult:
        """
        Report the state of an invoice, promoting it when the oracle says it is paid.

        Raises:
            PaymentNotFoundError: if payment_id was never issued (or its unpaid
                invoice was already cleaned up)
            OracleUnavailableError: if the oracle could not answer; nothing changed
        """

        donation = self._ledger.get_by_payment_id(payment_id)
        if donation is not None:
            return StatusResult(payment_id=payment_id, status=InvoiceStatus.PAID, paid_at=donation.paid_at)

        invoice = self._invoices.get(payment_id)
        if invoice is None:
            # Promotion removes the invoice after committing the donation.
            donation = self._ledger.get_by_payment_id(payment_id)
            if donation is not None:
                return StatusResult(payment_id=payment_id, status=InvoiceStatus.PAID, paid_at=donation.paid_at)
            logger.info("Status requested for unknown payment_id", extra={"payment_id": payment_id})
            raise PaymentNotFoundError(payment_id)

        if invoice.is_expired(self._clock()):
            return self._expire(invoice)

        check = self._oracle.is_paid(payment_id)
        if not check.paid:
            return StatusResult(payment_id=payment_id, status=InvoiceStatus.PENDING)

        donation = self._promote(invoice, check)
        return StatusResult(payment_id=payment_id, status=InvoiceStatus.PAID, paid_at=donation.paid_at)

    def _expire(self, invoice: Invoice) -> StatusResult:
        payment_id = invoice.payment_id
        with self._locks.hold(payment_id):
            # A concurrent poll may have promoted it while we waited.
            donation = self._ledger.get_by_payment_id(payment_id)
            if donation is not None:
                return StatusResult(payment_id=payment_id, status=InvoiceStatus.PAID, paid_at=donation.paid_at)
            self._invoices.remove(payment_id)

        logger.info("Invoice expired", extra={"payment_id": payment_id})
        return StatusResult(payment_id=payment_id, status=InvoiceStatus.EXPIRED)

    def _promote(self, invoice: Invoice, check: PaymentCheck) -> Donation:
        payment_id = invoice.payment_id
        with self._locks.hold(payment_id):
            existing = self._ledger.get_by_payment_id(payment_id)
            if existing is not None:
                self._invoices.remove(payment_id)
                return existing

            candidate = Donation.from_invoice(
                invoice,
                donation_id=self._new_donation_id(),
                paid_at=check.paid_at or self._clock(),
            )
            donation, inserted = self._ledger.append_if_absent(candidate)
            self._invoices.remove(payment_id)

        if inserted:
            logger.info(
                f"Payment confirmed: {donation.amount_sats} sats from {donation.donor_name}",
                extra={
                    "payment_id": payment_id,
                    "donation_id": donation.donation_id,
                    "amount_sats": donation.amount_sats,
                },
            )
        else:
            logger.info("Donation already recorded, promotion skipped", extra={"payment_id": payment_id})
        return donation

    def sweep_expired(self) -> int:
        """
        Remove every pending invoice with now > expires_at.

        Each removal takes the same per-key lock as a status check, so a sweep
        never races an in-flight promotion commit.

        Returns:
            Number of invoices removed
        """

        now = self._clock()
        removed = 0
        for payment_id in self._invoices.list_expired_ids(now):
            with self._locks.hold(payment_id):
                invoice = self._invoices.get(payment_id)
                if invoice is None or not invoice.is_expired(now):
                    continue
                self._invoices.remove(payment_id)
                removed += 1

        if removed:
            logger.info(f"Swept {removed} expired invoice(s)", extra={"removed": removed})
        return removed

    def get_stats(self) -> AggregateStats:
        return self._ledger.stats()

    def get_recent_donations(self, limit: int) -> List[Donation]:
        """
        Up to `limit` donations, most recently paid first.

        Each call re-reads the ledger.
        """

        if limit < 0:
            raise ValueError("limit must be >= 0")
        return self._ledger.recent(limit)

    def get_receipt(self, payment_id: str) -> DonationReceipt:
        """
        Receipt for a completed donation, read from the ledger only.

        Raises:
            PaymentNotFoundError: if no donation exists for payment_id
        """

        donation = self._ledger.get_by_payment_id(payment_id)
        if donation is None:
            raise PaymentNotFoundError(payment_id)
        return DonationReceipt.from_donation(donation, network=self._network)

    def pending_invoice_count(self) -> int:
        return len(self._invoices)

    def close(self) -> None:
        """Release the oracle's connections, if it holds any."""

        close = getattr(self._oracle, "close", None)
        if close is not None:
            close()


__all__ = [
    "MIN_AMOUNT_SATS",
    "MAX_AMOUNT_SATS",
    "DonationLifecycleManager",
    "validate_amount",
]
