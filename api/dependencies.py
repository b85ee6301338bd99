"""
Process-wide wiring.

Builds the single DonationLifecycleManager from Settings. The FastAPI app
creates it once in its lifespan and stores it on `app.state.manager`; route
handlers get it through `get_manager`.
"""

from __future__ import annotations

import logging

from fastapi import Request

from api.settings import Settings
from repositories.client import get_supabase_client
from repositories.invoice_store import InvoiceStore
from repositories.ledger_store import InMemoryLedgerStore, LedgerStore
from repositories.supabase_ledger_store import SupabaseLedgerStore
from services.invoice_encoder import PlaceholderInvoiceEncoder
from services.lifecycle_manager import DonationLifecycleManager
from services.payment_oracle import (
    LndRestPaymentOracle,
    PaymentOracle,
    SimulatedPaymentOracle,
    load_macaroon_hex,
)

logger = logging.getLogger(__name__)


def build_ledger_store(settings: Settings) -> LedgerStore:
    if settings.ledger_backend == "supabase":
        client = get_supabase_client(settings.supabase_url, settings.supabase_key)
        return SupabaseLedgerStore(client, table=settings.donations_table)
    return InMemoryLedgerStore()


def build_oracle(settings: Settings) -> PaymentOracle:
    if settings.oracle_backend == "lnd":
        if not settings.lnd_macaroon_path:
            raise RuntimeError(
                "Missing environment variable: LND_MACAROON_PATH. "
                "Set LND_MACAROON_PATH when ORACLE_BACKEND=lnd."
            )
        return LndRestPaymentOracle(
            settings.lnd_rest_host,
            load_macaroon_hex(settings.lnd_macaroon_path),
            tls_cert_path=settings.lnd_tls_cert_path,
            timeout=float(settings.lnd_timeout_seconds),
        )
    logger.warning(
        "Using simulated payment oracle: invoices are reported paid without a Lightning node",
        extra={"paid_after_polls": settings.simulated_paid_after_polls},
    )
    return SimulatedPaymentOracle(paid_after_polls=settings.simulated_paid_after_polls)


def build_manager(settings: Settings) -> DonationLifecycleManager:
    return DonationLifecycleManager(
        invoice_store=InvoiceStore(),
        ledger_store=build_ledger_store(settings),
        oracle=build_oracle(settings),
        encoder=PlaceholderInvoiceEncoder(),
        default_recipient=settings.default_recipient,
        network=settings.lightning_network,
    )


def get_manager(request: Request) -> DonationLifecycleManager:
    return request.app.state.manager


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


__all__ = ["build_manager", "build_ledger_store", "build_oracle", "get_manager", "get_settings"]
