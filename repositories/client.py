"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
created on first use rather than at import time, so the service can run with
the in-memory ledger without any Supabase credentials.

Environment variables required when the Supabase ledger is selected:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

# Look for .env in the project root
env_path = Path(__file__).parent.parent / ".env"

_client: Optional[Client] = None
_client_lock = threading.Lock()


def get_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Client:
    """
    Return the process-wide Supabase client, creating it on first call.

    Explicit arguments win over the environment.

    Raises:
        RuntimeError: if the URL or key is missing
    """

    global _client

    with _client_lock:
        if _client is not None:
            return _client

        load_dotenv(dotenv_path=env_path)
        supabase_url = url or os.getenv("SUPABASE_URL")
        supabase_key = key or os.getenv("SUPABASE_KEY")

        if not supabase_url:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_URL. "
                "Set SUPABASE_URL to your Supabase project URL."
            )

        if not supabase_key:
            raise RuntimeError(
                "Missing environment variable: SUPABASE_KEY. "
                "Set SUPABASE_KEY to your Supabase API key."
            )

        _client = create_client(supabase_url, supabase_key)
        return _client


__all__ = ["get_supabase_client"]
