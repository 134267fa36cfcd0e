"""Location and credential repository backed by Supabase."""

from datetime import datetime, timezone
from typing import Optional

from src.models.location import Location
from src.models.provider import ProviderCredentials
from src.models.sync_status import SyncStatus
from src.services.supabase_client import (
    get_integration_row,
    get_location_row,
    list_location_rows,
    update_location_row,
)
from src.utils.errors import AlreadyInProgress
from src.utils.sync_config import SyncConfig
from src.utils.logging import get_structured_logger, mask_identifier

logger = get_structured_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocationRepository:
    """Keyed reads and single-row writes for locations and credentials."""

    def __init__(self, provider: str = SyncConfig.PROVIDER_NAME):
        self.provider = provider

    async def get_location(self, agency_id: str, location_id: str) -> Optional[Location]:
        row = await get_location_row(agency_id, location_id)
        if row is None:
            return None
        return Location.model_validate(row)

    async def get_credentials(self, agency_id: str) -> Optional[ProviderCredentials]:
        """Return usable credentials, or None when the agency is not connected."""
        row = await get_integration_row(agency_id, self.provider)
        if not row or not row.get("access_token"):
            return None
        if row.get("status", "connected") != "connected":
            logger.info(
                "Integration present but not connected",
                agency_id=mask_identifier(agency_id),
                integration_status=row.get("status"),
            )
            return None
        return ProviderCredentials(
            agency_id=agency_id,
            access_token=row["access_token"],
            expires_at=row.get("expires_at"),
            status=row.get("status", "connected"),
        )

    async def update_sync_status(
        self,
        agency_id: str,
        location_id: str,
        status: SyncStatus,
        provider_listing_id: Optional[str] = None,
        listing_url: Optional[str] = None,
        expected_status: Optional[SyncStatus] = None,
    ) -> Location:
        """
        Persist a new status in one conditional row update.

        Raises AlreadyInProgress if ``expected_status`` no longer matches the
        stored value, meaning another writer got there first.
        """
        updates = {
            "sync_status": status.value,
            "last_synced_at": _utc_now(),
            "updated_at": _utc_now(),
        }
        if provider_listing_id:
            updates["provider_listing_id"] = provider_listing_id
        if listing_url:
            updates["provider_listing_url"] = listing_url

        row = await update_location_row(
            agency_id,
            location_id,
            updates,
            expected_sync_status=expected_status.value if expected_status else None,
        )
        if row is None:
            raise AlreadyInProgress(
                f"Location {location_id} changed while its status was being updated"
            )
        return Location.model_validate(row)

    async def reset_sync_state(self, agency_id: str, location_id: str) -> Location:
        """Clear provider linkage and return the location to PendingUpload."""
        updates = {
            "sync_status": SyncStatus.PENDING_UPLOAD.value,
            "provider_listing_id": None,
            "provider_listing_url": None,
            "last_synced_at": None,
            "updated_at": _utc_now(),
        }
        row = await update_location_row(agency_id, location_id, updates)
        if row is None:
            raise AlreadyInProgress(f"Location {location_id} could not be reset")
        return Location.model_validate(row)

    async def list_locations_by_status(
        self, agency_id: str, statuses: list[SyncStatus]
    ) -> list[Location]:
        rows = await list_location_rows(agency_id, [s.value for s in statuses])
        return [Location.model_validate(row) for row in rows]

    async def list_syncable_locations(
        self, agency_id: str, statuses: list[SyncStatus]
    ) -> list[Location]:
        """Locations in the given states that already have a provider listing."""
        rows = await list_location_rows(
            agency_id, [s.value for s in statuses], require_provider_id=True
        )
        return [Location.model_validate(row) for row in rows]
