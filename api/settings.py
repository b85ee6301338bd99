"""
Service configuration.

Values come from the environment, optionally loaded from a `.env` file in the
project root. Invalid values fail at start-up with a message naming the
variable. The invoice TTL is a fixed policy constant and is not configurable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

LEDGER_BACKENDS = ("memory", "supabase")
ORACLE_BACKENDS = ("simulated", "lnd")


def _get_int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid environment variable {name}: expected an integer, got {raw!r}")
    if value < minimum:
        raise RuntimeError(f"Invalid environment variable {name}: must be >= {minimum}, got {value}")
    return value


def _get_choice(env: Mapping[str, str], name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (env.get(name) or default).strip().lower()
    if value not in choices:
        raise RuntimeError(
            f"Invalid environment variable {name}: expected one of {', '.join(choices)}, got {value!r}"
        )
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    ledger_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    donations_table: str = "donations"

    oracle_backend: str = "simulated"
    simulated_paid_after_polls: int = 2
    lnd_rest_host: str = "127.0.0.1:8080"
    lnd_macaroon_path: Optional[str] = None
    lnd_tls_cert_path: Optional[str] = None
    lnd_timeout_seconds: int = 5

    lightning_network: str = "mainnet"
    default_recipient: str = "SatsForGood"
    sweep_interval_seconds: int = 0
    recent_donations_default: int = 10
    log_level: str = "INFO"

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from `environ` (defaults to os.environ after loading .env).

        Raises:
            RuntimeError: for unknown backends, malformed numbers or missing
                credentials of the selected backend
        """

        if environ is None:
            load_dotenv(dotenv_path=env_path)
            environ = os.environ
        env = environ

        ledger_backend = _get_choice(env, "LEDGER_BACKEND", "memory", LEDGER_BACKENDS)
        oracle_backend = _get_choice(env, "ORACLE_BACKEND", "simulated", ORACLE_BACKENDS)

        settings = Settings(
            ledger_backend=ledger_backend,
            supabase_url=env.get("SUPABASE_URL") or None,
            supabase_key=env.get("SUPABASE_KEY") or None,
            donations_table=env.get("DONATIONS_TABLE") or "donations",
            oracle_backend=oracle_backend,
            simulated_paid_after_polls=_get_int(env, "SIMULATED_PAID_AFTER_POLLS", 2, minimum=1),
            lnd_rest_host=env.get("LND_REST_HOST") or "127.0.0.1:8080",
            lnd_macaroon_path=env.get("LND_MACAROON_PATH") or None,
            lnd_tls_cert_path=env.get("LND_TLS_CERT_PATH") or None,
            lnd_timeout_seconds=_get_int(env, "LND_TIMEOUT_SECONDS", 5, minimum=1),
            lightning_network=env.get("LIGHTNING_NETWORK") or "mainnet",
            default_recipient=env.get("DEFAULT_RECIPIENT") or "SatsForGood",
            sweep_interval_seconds=_get_int(env, "SWEEP_INTERVAL_SECONDS", 0),
            recent_donations_default=_get_int(env, "RECENT_DONATIONS_DEFAULT", 10, minimum=1),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )

        if settings.ledger_backend == "supabase":
            if not settings.supabase_url:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_URL. "
                    "Set SUPABASE_URL when LEDGER_BACKEND=supabase."
                )
            if not settings.supabase_key:
                raise RuntimeError(
                    "Missing environment variable: SUPABASE_KEY. "
                    "Set SUPABASE_KEY when LEDGER_BACKEND=supabase."
                )

        if settings.oracle_backend == "lnd" and not settings.lnd_macaroon_path:
            raise RuntimeError(
                "Missing environment variable: LND_MACAROON_PATH. "
                "Set LND_MACAROON_PATH when ORACLE_BACKEND=lnd."
            )

        return settings


__all__ = ["Settings"]
