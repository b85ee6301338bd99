"""
Tests for `repositories/supabase_ledger_store.py`.

Runs against an in-test fake of the postgrest query builder that mimics a
table with a unique payment_id constraint.

Covers rules:
- The first append for a payment_id inserts; later appends return the stored row.
- Stats are derived from a paged scan of amount_sats, past the response row cap.
- recent() asks for paid_at desc, then insertion order desc, limited.
- Backend errors surface as LedgerUnavailableError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from postgrest.exceptions import APIError

from domain.donation import AggregateStats, Donation
from domain.errors import LedgerUnavailableError
from repositories.supabase_ledger_store import SupabaseLedgerStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class FakeResponse:
    data: List[Dict[str, Any]]
    error: Optional[str] = None


@dataclass
class FakeQuery:
    table: "FakeTable"
    op: str = "select"
    payload: Optional[Dict[str, Any]] = None
    columns: str = "*"
    filters: List[tuple] = field(default_factory=list)
    orders: List[tuple] = field(default_factory=list)
    row_limit: Optional[int] = None
    row_offset: int = 0

    def select(self, columns: str) -> "FakeQuery":
        self.op = "select"
        self.columns = columns
        return self

    def upsert(self, payload: Dict[str, Any], on_conflict: str = "", ignore_duplicates: bool = False) -> "FakeQuery":
        assert on_conflict == "payment_id"
        assert ignore_duplicates is True
        self.op = "upsert"
        self.payload = payload
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((column, desc))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self.row_limit = n
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.row_offset = start
        self.row_limit = end - start + 1
        return self

    def execute(self) -> FakeResponse:
        return self.table.run(self)


class FakeTable:
    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.queries: List[FakeQuery] = []
        self.fail_with: Optional[Exception] = None
        self.max_rows: Optional[int] = None

    def run(self, query: FakeQuery) -> FakeResponse:
        self.queries.append(query)
        if self.fail_with is not None:
            raise self.fail_with

        if query.op == "upsert":
            if any(row["payment_id"] == query.payload["payment_id"] for row in self.rows):
                return FakeResponse(data=[])
            row = dict(query.payload, seq=len(self.rows) + 1)
            self.rows.append(row)
            return FakeResponse(data=[row])

        rows = [r for r in self.rows if all(r.get(c) == v for c, v in query.filters)]
        for column, desc in reversed(query.orders):
            rows.sort(key=lambda r: r[column], reverse=desc)
        rows = rows[query.row_offset :]
        if query.row_limit is not None:
            rows = rows[: query.row_limit]
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        if query.columns != "*":
            wanted = [c.strip() for c in query.columns.split(",")]
            rows = [{c: r[c] for c in wanted} for r in rows]
        return FakeResponse(data=rows)


class FakeClient:
    def __init__(self) -> None:
        self.tables: Dict[str, FakeTable] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.tables.setdefault(name, FakeTable()))


def _donation(donation_id: str, payment_id: str, amount: int = 100, paid_at: datetime = T0) -> Donation:
    return Donation(
        donation_id=donation_id,
        payment_id=payment_id,
        donor_name="Ann",
        recipient="Shelter",
        amount_sats=amount,
        paid_at=paid_at,
    )


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def store(client: FakeClient) -> SupabaseLedgerStore:
    return SupabaseLedgerStore(client, table="donations")


def test_append_if_absent_inserts_then_returns_existing(store: SupabaseLedgerStore, client: FakeClient) -> None:
    first, inserted = store.append_if_absent(_donation("d1", "p1", amount=1000))
    again, inserted_again = store.append_if_absent(_donation("d2", "p1", amount=5))

    assert inserted is True
    assert first.donation_id == "d1"
    assert inserted_again is False
    assert again.donation_id == "d1"
    assert again.amount_sats == 1000
    assert again.paid_at == T0
    assert len(client.tables["donations"].rows) == 1
    assert client.tables["donations"].rows[0]["paid_at_utc"] == T0.isoformat()


def test_get_by_payment_id(store: SupabaseLedgerStore) -> None:
    store.append_if_absent(_donation("d1", "p1"))

    found = store.get_by_payment_id("p1")

    assert found == _donation("d1", "p1")
    assert store.get_by_payment_id("nope") is None


def test_stats_scan_amounts(store: SupabaseLedgerStore) -> None:
    assert store.stats() == AggregateStats(0, 0)

    store.append_if_absent(_donation("d1", "p1", amount=100))
    store.append_if_absent(_donation("d2", "p2", amount=250))
    store.append_if_absent(_donation("d3", "p2", amount=999))

    assert store.stats() == AggregateStats(total_amount_sats=350, donor_count=2)


@pytest.mark.parametrize("max_rows", [1000, 300])
def test_stats_scan_past_response_row_cap(store: SupabaseLedgerStore, client: FakeClient, max_rows: int) -> None:
    table = client.tables.setdefault("donations", FakeTable())
    table.max_rows = max_rows
    for i in range(1500):
        table.rows.append(
            {
                "seq": i + 1,
                "donation_id": f"d{i}",
                "payment_id": f"p{i}",
                "donor_name": "Ann",
                "recipient": None,
                "amount_sats": 10,
                "paid_at_utc": T0.isoformat(),
            }
        )

    assert store.stats() == AggregateStats(total_amount_sats=15000, donor_count=1500)
    assert all(q.orders == [("seq", False)] for q in table.queries)


def test_recent_orders_by_paid_at_then_seq(store: SupabaseLedgerStore, client: FakeClient) -> None:
    store.append_if_absent(_donation("d1", "p1", paid_at=T0))
    store.append_if_absent(_donation("d2", "p2", paid_at=T0 + timedelta(minutes=5)))
    store.append_if_absent(_donation("d3", "p3", paid_at=T0 + timedelta(minutes=5)))
    store.append_if_absent(_donation("d4", "p4", paid_at=T0 + timedelta(minutes=1)))

    recent = store.recent(3)

    assert [d.donation_id for d in recent] == ["d3", "d2", "d4"]
    last_query = client.tables["donations"].queries[-1]
    assert last_query.orders == [("paid_at_utc", True), ("seq", True)]
    assert last_query.row_limit == 3
    assert store.recent(0) == []


def test_backend_error_raises_ledger_unavailable(store: SupabaseLedgerStore, client: FakeClient) -> None:
    client.tables["donations"] = FakeTable()
    client.tables["donations"].fail_with = APIError({"message": "connection reset", "code": "500"})

    with pytest.raises(LedgerUnavailableError):
        store.get_by_payment_id("p1")

    with pytest.raises(LedgerUnavailableError):
        store.append_if_absent(_donation("d1", "p1"))


def test_error_attribute_on_response_raises(store: SupabaseLedgerStore, client: FakeClient) -> None:
    class ErrorTable(FakeTable):
        def run(self, query: FakeQuery) -> FakeResponse:
            return FakeResponse(data=[], error="permission denied")

    client.tables["donations"] = ErrorTable()

    with pytest.raises(LedgerUnavailableError):
        store.stats()
