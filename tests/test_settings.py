"""
Tests for `api/settings.py` and `api/dependencies.py` wiring.

Covers rules:
- Defaults select the in-memory ledger and the simulated oracle.
- Unknown backends and malformed numbers fail at start-up.
- Selecting Supabase or LND without credentials fails at start-up.
"""

from __future__ import annotations

import pytest

from api.dependencies import build_manager, build_oracle
from api.settings import Settings
from services.payment_oracle import LndRestPaymentOracle, SimulatedPaymentOracle


def test_defaults() -> None:
    settings = Settings.from_env({})

    assert settings.ledger_backend == "memory"
    assert settings.oracle_backend == "simulated"
    assert settings.simulated_paid_after_polls == 2
    assert settings.recent_donations_default == 10
    assert settings.sweep_interval_seconds == 0


def test_values_are_read() -> None:
    settings = Settings.from_env(
        {
            "LEDGER_BACKEND": "Memory",
            "SIMULATED_PAID_AFTER_POLLS": "4",
            "LIGHTNING_NETWORK": "testnet",
            "DEFAULT_RECIPIENT": "Shelter",
            "SWEEP_INTERVAL_SECONDS": "30",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.ledger_backend == "memory"
    assert settings.simulated_paid_after_polls == 4
    assert settings.lightning_network == "testnet"
    assert settings.default_recipient == "Shelter"
    assert settings.sweep_interval_seconds == 30
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"LEDGER_BACKEND": "postgres"},
        {"ORACLE_BACKEND": "cln"},
        {"SIMULATED_PAID_AFTER_POLLS": "two"},
        {"SIMULATED_PAID_AFTER_POLLS": "0"},
        {"LEDGER_BACKEND": "supabase"},
        {"LEDGER_BACKEND": "supabase", "SUPABASE_URL": "https://x.supabase.co"},
        {"ORACLE_BACKEND": "lnd"},
    ],
)
def test_invalid_configuration_raises(env: dict) -> None:
    with pytest.raises(RuntimeError):
        Settings.from_env(env)


def test_build_manager_from_defaults() -> None:
    manager = build_manager(Settings.from_env({}))

    invoice = manager.create_invoice(100)

    assert manager.check_status(invoice.payment_id).status.value == "PENDING"
    assert manager.check_status(invoice.payment_id).status.value == "PAID"
    assert manager.get_stats().donor_count == 1


def test_build_oracle_lnd(tmp_path) -> None:
    macaroon = tmp_path / "readonly.macaroon"
    macaroon.write_bytes(b"\x00\x01")
    settings = Settings.from_env({"ORACLE_BACKEND": "lnd", "LND_MACAROON_PATH": str(macaroon)})

    oracle = build_oracle(settings)

    assert isinstance(oracle, LndRestPaymentOracle)
    oracle.close()
    assert isinstance(build_oracle(Settings()), SimulatedPaymentOracle)


def test_build_oracle_lnd_without_macaroon_raises() -> None:
    with pytest.raises(RuntimeError, match="LND_MACAROON_PATH"):
        build_oracle(Settings(oracle_backend="lnd"))
