"""Supabase access for the tenant policy store.

One lazily created client is shared by the process; the engine only ever
issues reads through it.
"""

import threading
import time
from typing import Any

from app.config import get_settings
from app.core.logging import log_external_call
from supabase import Client, create_client

_supabase: Client | None = None
_client_lock = threading.Lock()


def get_supabase_client() -> Client:
    """Get or create the shared Supabase client (thread-safe)."""
    global _supabase
    if _supabase is None:
        with _client_lock:
            if _supabase is None:
                settings = get_settings()
                _supabase = create_client(settings.supabase_url, settings.supabase_key)
    return _supabase


def check_supabase_health(client: Client, table: str) -> dict[str, Any]:
    """Probe the policy table; never raises, reports status instead."""
    start = time.time()
    try:
        client.table(table).select("tenant_id").limit(1).execute()
        duration_ms = (time.time() - start) * 1000
        log_external_call("supabase", "health_check", True, duration_ms)
        return {"status": "healthy", "latency_ms": round(duration_ms, 2)}
    except Exception as e:
        duration_ms = (time.time() - start) * 1000
        log_external_call("supabase", "health_check", False, duration_ms)
        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": round(duration_ms, 2),
        }
