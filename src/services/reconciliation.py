"""Reconciliation sweep - poll provider state and correct local drift."""

import asyncio
from typing import Optional
from pydantic import BaseModel

from src.models.location import Location
from src.models.provider import ProviderCredentials
from src.models.sync_status import SyncStatus, apply_events
from src.services.inflight_guard import InFlightGuard, get_inflight_guard
from src.services.location_repository import LocationRepository
from src.services.provider_client import ListingsProviderClient
from src.services.publish_orchestrator import events_for_remote_state
from src.utils.errors import AlreadyInProgress, CredentialsNotFound, ListingSyncError
from src.utils.logging import get_structured_logger, log_timing, mask_identifier
from src.utils.sync_config import SyncConfig

logger = get_structured_logger(__name__)

# Statuses the provider can still move; PendingUpload has nothing remote to poll
SWEEP_STATUSES = [SyncStatus.PENDING, SyncStatus.UNDER_REVIEW, SyncStatus.ACTIVE]


class SweepReport(BaseModel):
    """Counts for one reconciliation run."""
    agency_id: str
    checked: int = 0
    changed: int = 0
    skipped_in_flight: int = 0
    failed: int = 0


class ReconciliationSweep:
    """Polls remote state for many locations in parallel."""

    def __init__(
        self,
        provider: ListingsProviderClient,
        repository: Optional[LocationRepository] = None,
        guard: Optional[InFlightGuard] = None,
        concurrency: int = SyncConfig.SWEEP_CONCURRENCY,
    ):
        self.provider = provider
        self.repository = repository or LocationRepository()
        self.guard = guard or get_inflight_guard()
        self.concurrency = max(1, concurrency)

    async def reconcile_location(
        self,
        agency_id: str,
        location: Location,
        credentials: ProviderCredentials,
    ) -> bool:
        """Poll one location; returns True when its status changed."""
        async with self.guard.hold(agency_id, location.id):
            remote = await self.provider.fetch_status(credentials, location.provider_listing_id)
            new_status = apply_events(location.sync_status, events_for_remote_state(remote.state))
            if new_status is location.sync_status:
                return False

            await self.repository.update_sync_status(
                agency_id,
                location.id,
                new_status,
                listing_url=remote.listing_url,
                expected_status=location.sync_status,
            )
            logger.info(
                "Reconciled location status",
                agency_id=mask_identifier(agency_id),
                location_id=location.id,
                previous_status=location.sync_status.value,
                resulting_status=new_status.value,
                remote_state=remote.state.value,
            )
            return True

    async def reconcile_agency(self, agency_id: str) -> SweepReport:
        """Run one sweep over every pollable location of an agency."""
        credentials = await self.repository.get_credentials(agency_id)
        if credentials is None:
            raise CredentialsNotFound(f"No provider credentials configured for agency {agency_id}")

        locations = await self.repository.list_syncable_locations(agency_id, SWEEP_STATUSES)
        report = SweepReport(agency_id=agency_id)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _run(location: Location) -> None:
            async with semaphore:
                try:
                    changed = await self.reconcile_location(agency_id, location, credentials)
                except AlreadyInProgress:
                    report.skipped_in_flight += 1
                    return
                except ListingSyncError as e:
                    report.failed += 1
                    logger.warning(
                        "Reconciliation failed for location",
                        agency_id=mask_identifier(agency_id),
                        location_id=location.id,
                        error_kind=e.kind.value,
                    )
                    return
                report.checked += 1
                if changed:
                    report.changed += 1

        with log_timing(
            "reconcile_agency",
            logger=logger,
            agency_id=mask_identifier(agency_id),
            locations=len(locations),
        ):
            await asyncio.gather(*(_run(location) for location in locations))

        logger.info(
            "Reconciliation sweep completed",
            agency_id=mask_identifier(agency_id),
            checked=report.checked,
            changed=report.changed,
            skipped_in_flight=report.skipped_in_flight,
            failed=report.failed,
        )
        return report
