"""Supabase client wrapper with async context manager support."""

import os
from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from src.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

LOCATIONS_TABLE = "locations"
INTEGRATIONS_TABLE = "integrations"

# Global client instance (singleton pattern)
_client: Optional[Client] = None


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
    """Drop the cached Supabase client."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


# Locations table operations
async def get_location_row(agency_id: str, location_id: str) -> Optional[dict]:
    """Get a location scoped to its agency."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table(LOCATIONS_TABLE)
                .select("*")
                .eq("id", location_id)
                .eq("agency_id", agency_id)
                .execute()
            )
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get location: {e}")


async def update_location_row(
    agency_id: str,
    location_id: str,
    updates: dict,
    expected_sync_status: Optional[str] = None,
) -> Optional[dict]:
    """
    Update a single location row.

    When ``expected_sync_status`` is given the update only applies if the
    stored status still matches; returns None when no row matched.
    """
    async with SupabaseClient() as client:
        try:
            query = (
                client.table(LOCATIONS_TABLE)
                .update(updates)
                .eq("id", location_id)
                .eq("agency_id", agency_id)
            )
            if expected_sync_status == "pending_upload":
                # Rows created before the column default existed hold NULL
                query = query.or_("sync_status.eq.pending_upload,sync_status.is.null")
            elif expected_sync_status is not None:
                query = query.eq("sync_status", expected_sync_status)
            result = query.execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to update location: {e}")


async def list_location_rows(
    agency_id: str,
    sync_statuses: Optional[list[str]] = None,
    require_provider_id: bool = False,
) -> list[dict]:
    """List an agency's locations, optionally filtered by sync status."""
    async with SupabaseClient() as client:
        try:
            query = client.table(LOCATIONS_TABLE).select("*").eq("agency_id", agency_id)
            if sync_statuses:
                query = query.in_("sync_status", sync_statuses)
            if require_provider_id:
                query = query.not_.is_("provider_listing_id", "null")
            result = query.order("created_at", desc=True).execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to list locations: {e}")


# Integrations table operations
async def get_integration_row(agency_id: str, provider: str) -> Optional[dict]:
    """Get the agency's integration record for a provider."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table(INTEGRATIONS_TABLE)
                .select("*")
                .eq("agency_id", agency_id)
                .eq("provider", provider)
                .execute()
            )
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get integration: {e}")
