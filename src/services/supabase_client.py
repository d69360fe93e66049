"""Supabase client wrapper with async context manager support."""

import os
from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from postgrest.exceptions import APIError
from src.utils.errors import AllocationError, ConflictError, InvalidStateError, SupabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None

# Postgres SQLSTATEs the caller resolves by re-reading state
UNIQUE_VIOLATION = "23505"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
CONFLICT_CODES = frozenset({UNIQUE_VIOLATION, SERIALIZATION_FAILURE, DEADLOCK_DETECTED})
# RAISE EXCEPTION inside the engine functions
RAISED_BY_FUNCTION = "P0001"


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


async def close_supabase_client() -> None:
    """Close Supabase client connections."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self, client: Optional[Client] = None):
        self.client: Optional[Client] = client

    async def __aenter__(self) -> Client:
        """Enter async context."""
        if self.client is None:
            self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        if exc_type and not issubclass(exc_type, AllocationError):
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def translate_api_error(error: APIError, operation: str) -> AllocationError:
    """Map a PostgREST error to the engine's error taxonomy."""
    if error.code in CONFLICT_CODES:
        return ConflictError(f"{operation} conflicted with a concurrent write: {error.message}")
    if error.code == RAISED_BY_FUNCTION:
        return InvalidStateError(f"Failed to {operation}: {error.message}")
    return SupabaseError(f"Failed to {operation}: {error.message}")
