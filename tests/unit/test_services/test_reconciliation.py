"""Tests for the reconciliation sweep."""

import httpx
import pytest

from src.models.sync_status import SyncStatus
from src.services.reconciliation import ReconciliationSweep
from src.utils.errors import CredentialsNotFound
from tests.utils.factories import create_location_data
from tests.utils.helpers import InMemoryLocationRepository, ProviderStub


def _seed(agency_id, credentials) -> InMemoryLocationRepository:
    rows = [
        create_location_data(agency_id, "loc_pending", "Pending", provider_listing_id="BP-1"),
        create_location_data(agency_id, "loc_review", "Under Review", provider_listing_id="BP-2"),
        create_location_data(agency_id, "loc_active", "Active", provider_listing_id="BP-3"),
        create_location_data(agency_id, "loc_new", "pending_upload"),
        create_location_data(agency_id, "loc_suspended", "Suspended", provider_listing_id="BP-5"),
    ]
    return InMemoryLocationRepository(locations=rows, credentials={agency_id: credentials})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_applies_remote_states(agency_id, credentials, guard):
    repository = _seed(agency_id, credentials)
    stub = (
        ProviderStub()
        .on("GET", "/locations/BP-1", httpx.Response(200, json={"Status": "Active"}))
        .on("GET", "/locations/BP-2", httpx.Response(200, json={"Status": "Under Review"}))
        .on("GET", "/locations/BP-3", httpx.Response(200, json={"Status": "Suspended"}))
    )

    async with stub.client() as provider:
        report = await ReconciliationSweep(provider, repository, guard, concurrency=2).reconcile_agency(agency_id)

    assert report.checked == 3
    assert report.changed == 2
    assert report.failed == 0
    assert repository.status_of(agency_id, "loc_pending") is SyncStatus.ACTIVE
    assert repository.status_of(agency_id, "loc_review") is SyncStatus.UNDER_REVIEW
    assert repository.status_of(agency_id, "loc_active") is SyncStatus.SUSPENDED
    # Never-uploaded and suspended locations are not polled
    assert repository.status_of(agency_id, "loc_new") is SyncStatus.PENDING_UPLOAD
    assert len(stub.calls) == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_skips_locations_in_flight(agency_id, credentials, guard):
    repository = _seed(agency_id, credentials)
    stub = ProviderStub().on("GET", "/locations/BP-1", httpx.Response(200, json={"Status": "Active"}))
    guard.try_acquire(agency_id, "loc_review")
    guard.try_acquire(agency_id, "loc_active")

    async with stub.client() as provider:
        report = await ReconciliationSweep(provider, repository, guard).reconcile_agency(agency_id)

    assert report.skipped_in_flight == 2
    assert report.changed == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_counts_failures_without_stopping(agency_id, credentials, guard):
    repository = _seed(agency_id, credentials)
    stub = (
        ProviderStub()
        .on("GET", "/locations/BP-1", httpx.ConnectError("reset"))
        .on("GET", "/locations/BP-2", httpx.Response(500))
        .on("GET", "/locations/BP-3", httpx.Response(200, json={"Status": "Active"}))
    )

    async with stub.client() as provider:
        report = await ReconciliationSweep(provider, repository, guard).reconcile_agency(agency_id)

    assert report.failed == 2
    assert report.checked == 1
    assert report.changed == 0
    assert repository.status_of(agency_id, "loc_pending") is SyncStatus.PENDING


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_remote_state_changes_nothing(agency_id, credentials, guard):
    repository = _seed(agency_id, credentials)
    stub = ProviderStub()

    async with stub.client() as provider:
        report = await ReconciliationSweep(provider, repository, guard).reconcile_agency(agency_id)

    assert report.changed == 0
    assert repository.updates == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_requires_credentials(agency_id, guard):
    repository = InMemoryLocationRepository(locations=[], credentials={})

    async with ProviderStub().client() as provider:
        with pytest.raises(CredentialsNotFound):
            await ReconciliationSweep(provider, repository, guard).reconcile_agency(agency_id)
