"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository modules
call `get_supabase()`; the client is created on first use so that importing the
API (or the test suite) does not require credentials.

Environment variables required:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase service-role key (server-side only; the intake
  tables and the attachment bucket are not readable with the anon key)
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from dotenv import load_dotenv

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

# Load environment variables from the .env file at the project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_lock = threading.Lock()
_supabase: Client | None = None


def _create_client() -> Client:
    # Read credentials from the environment to avoid hard-coding secrets in code.
    supabase_url = os.getenv("SUPABASE_URL")
    supabase_key = os.getenv("SUPABASE_KEY")

    if not supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase service-role key."
        )

    return create_client(supabase_url, supabase_key)


def get_supabase() -> Client:
    """Return the shared Supabase client, creating it on first call."""

    global _supabase
    with _lock:
        if _supabase is None:
            _supabase = _create_client()
        return _supabase


def set_supabase(client: Client | None) -> None:
    """
    Replace the shared client (tests, scripts pointing at another project).

    Passing None drops the current client; the next call recreates it from the
    environment.
    """

    global _supabase
    with _lock:
        _supabase = client


__all__ = ["get_supabase", "set_supabase"]
