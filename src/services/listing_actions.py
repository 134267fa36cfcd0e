"""Listing sync actions called by the dashboard and by scheduled jobs.

Every action returns an OperationResult and never raises for classified
failures. Collaborators can be injected; by default a provider client is
opened for the duration of the call and the shared in-flight guard is used.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from src.models.location import Location
from src.models.sync_attempt import OperationResult
from src.models.sync_status import SyncStatus
from src.services.bulk_csv import generate_bulk_csv, generate_csv_filename, validate_location_for_upload
from src.services.connectivity_prober import ConnectivityProber
from src.services.inflight_guard import InFlightGuard
from src.services.location_repository import LocationRepository
from src.services.provider_client import ListingsProviderClient
from src.services.publish_orchestrator import PublishOrchestrator
from src.services.reconciliation import ReconciliationSweep
from src.services.result_reporter import normalize
from src.utils.errors import ErrorKind, ListingSyncError, ValidationError
from src.utils.logging import correlation_context, get_structured_logger, mask_identifier
from src.utils.sync_config import SyncConfig

logger = get_structured_logger(__name__)


@asynccontextmanager
async def _provider_session(
    provider: Optional[ListingsProviderClient],
) -> AsyncIterator[ListingsProviderClient]:
    """Use the injected client, or open and close a fresh one."""
    if provider is not None:
        yield provider
        return
    async with ListingsProviderClient() as client:
        yield client


async def _load_location(
    repository: LocationRepository, agency_id: str, location_id: str
) -> Location:
    location = await repository.get_location(agency_id, location_id)
    if location is None:
        raise ValidationError(f"Location {location_id} not found for this agency")
    return location


async def run_connectivity_test(
    agency_id: str,
    provider: Optional[ListingsProviderClient] = None,
    repository: Optional[LocationRepository] = None,
) -> OperationResult:
    """Run the connectivity probe. ``data`` carries the ProbeResult fields."""
    repository = repository or LocationRepository()
    with correlation_context():
        try:
            async with _provider_session(provider) as client:
                probe = await ConnectivityProber(client, repository).probe(agency_id)
        except ListingSyncError as e:
            return normalize(e)

        logger.info(
            "Connectivity test completed",
            agency_id=mask_identifier(agency_id),
            reachable=probe.reachable,
            authorized=probe.authorized,
        )
        return OperationResult(success=True, data=probe.model_dump())


async def run_publish(
    agency_id: str,
    location_id: str,
    provider: Optional[ListingsProviderClient] = None,
    repository: Optional[LocationRepository] = None,
    guard: Optional[InFlightGuard] = None,
) -> OperationResult:
    """Publish one location and report the attempt."""
    repository = repository or LocationRepository()
    with correlation_context():
        try:
            location = await _load_location(repository, agency_id, location_id)
            async with _provider_session(provider) as client:
                orchestrator = PublishOrchestrator(client, repository, guard)
                attempt = await orchestrator.publish_location(agency_id, location)
        except ListingSyncError as e:
            logger.info(
                "Publish refused",
                agency_id=mask_identifier(agency_id),
                location_id=location_id,
                error_kind=e.kind.value,
            )
            return normalize(e)
        return normalize(attempt)


async def run_batch_publish(
    agency_id: str,
    location_ids: list[str],
    provider: Optional[ListingsProviderClient] = None,
    repository: Optional[LocationRepository] = None,
    guard: Optional[InFlightGuard] = None,
    concurrency: int = SyncConfig.BATCH_PUBLISH_CONCURRENCY,
) -> OperationResult:
    """
    Probe first, then publish each location.

    When the probe says the provider is unreachable or the credentials are
    refused, nothing is published.
    """
    repository = repository or LocationRepository()
    # One publish per location even if the caller repeats an id
    location_ids = list(dict.fromkeys(location_ids))
    with correlation_context():
        async with _provider_session(provider) as client:
            try:
                probe = await ConnectivityProber(client, repository).probe(agency_id)
            except ListingSyncError as e:
                return normalize(e)

            if not probe.can_proceed:
                logger.warning(
                    "Batch publish aborted by connectivity probe",
                    agency_id=mask_identifier(agency_id),
                    reachable=probe.reachable,
                    authorized=probe.authorized,
                    requested=len(location_ids),
                )
                return OperationResult(
                    success=False,
                    data={"probe": probe.model_dump(), "results": {}},
                    error_message=probe.message,
                    error_kind=ErrorKind.TRANSPORT if not probe.reachable else ErrorKind.AUTH,
                )

            semaphore = asyncio.Semaphore(max(1, concurrency))

            async def _publish_one(location_id: str) -> tuple[str, OperationResult]:
                async with semaphore:
                    result = await run_publish(
                        agency_id, location_id, provider=client, repository=repository, guard=guard
                    )
                return location_id, result

            outcomes = await asyncio.gather(*(_publish_one(i) for i in location_ids))

    results = {location_id: result.model_dump(mode="json") for location_id, result in outcomes}
    failed = sum(1 for _, result in outcomes if not result.success)
    logger.info(
        "Batch publish completed",
        agency_id=mask_identifier(agency_id),
        requested=len(location_ids),
        failed=failed,
    )
    return OperationResult(
        success=failed == 0,
        data={
            "probe": probe.model_dump(),
            "results": results,
            "succeeded": len(location_ids) - failed,
            "failed": failed,
        },
        error_message=None if failed == 0 else f"{failed} of {len(location_ids)} locations failed to sync",
    )


async def run_reconciliation(
    agency_id: str,
    provider: Optional[ListingsProviderClient] = None,
    repository: Optional[LocationRepository] = None,
    guard: Optional[InFlightGuard] = None,
) -> OperationResult:
    """Run one reconciliation sweep for an agency."""
    repository = repository or LocationRepository()
    with correlation_context():
        try:
            async with _provider_session(provider) as client:
                report = await ReconciliationSweep(client, repository, guard).reconcile_agency(agency_id)
        except ListingSyncError as e:
            return normalize(e)
        return OperationResult(success=True, data=report.model_dump())


async def run_unlink(
    agency_id: str,
    location_id: str,
    provider: Optional[ListingsProviderClient] = None,
    repository: Optional[LocationRepository] = None,
    guard: Optional[InFlightGuard] = None,
) -> OperationResult:
    """Remove a location's provider listing and reset it to PendingUpload."""
    repository = repository or LocationRepository()
    with correlation_context():
        try:
            location = await _load_location(repository, agency_id, location_id)
            async with _provider_session(provider) as client:
                updated = await PublishOrchestrator(client, repository, guard).unlink_location(
                    agency_id, location
                )
        except ListingSyncError as e:
            return normalize(e)
        return OperationResult(
            success=True,
            data={"location_id": updated.id, "sync_status": updated.sync_status.value},
        )


async def export_pending_upload_csv(
    agency_id: str,
    repository: Optional[LocationRepository] = None,
) -> OperationResult:
    """Build the bulk-upload CSV for every location still waiting for upload."""
    repository = repository or LocationRepository()
    try:
        locations = await repository.list_locations_by_status(agency_id, [SyncStatus.PENDING_UPLOAD])
    except ListingSyncError as e:
        return normalize(e)

    exportable = []
    skipped = {}
    for location in locations:
        missing = validate_location_for_upload(location)
        if missing:
            skipped[location.id] = missing
        else:
            exportable.append(location)

    if not exportable:
        return normalize(ValidationError("No locations are waiting for upload"))

    logger.info(
        "Bulk upload CSV generated",
        agency_id=mask_identifier(agency_id),
        exported=len(exportable),
        skipped=len(skipped),
    )
    return OperationResult(
        success=True,
        data={
            "filename": generate_csv_filename(),
            "content": generate_bulk_csv(exportable),
            "count": len(exportable),
            "skipped": skipped,
        },
    )
