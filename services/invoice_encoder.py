"""
Invoice encoder.

Turns (amount, payment_id, description) into the payment request string a
wallet scans. The lifecycle manager treats the result as opaque and never
parses it.

PlaceholderInvoiceEncoder does not sign anything; it produces a recognisable
`lnbc...` placeholder so the rest of the flow can run without a node. A real
deployment plugs in an encoder that asks its Lightning node for the invoice.
"""

from __future__ import annotations

from typing import Protocol


class InvoiceEncoder(Protocol):
    def encode(self, amount_sats: int, payment_id: str, description: str) -> str:
        ...


def describe_donation(amount_sats: int, recipient: str) -> str:
    return f"Donation of {amount_sats} sats to {recipient}"


class PlaceholderInvoiceEncoder:
    prefix = "lnbc"

    def encode(self, amount_sats: int, payment_id: str, description: str) -> str:
        # Lightning amounts in the human-readable part are in BTC units; "n" is nano-BTC.
        return f"{self.prefix}{amount_sats * 10}n1-placeholder-{payment_id[:16]}"


__all__ = ["InvoiceEncoder", "PlaceholderInvoiceEncoder", "describe_donation"]
