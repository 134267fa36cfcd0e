"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import AsyncMock, MagicMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("PROVIDER_API_BASE_URL", "https://provider.test/v1")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.location import Location
from src.models.provider import ProviderCredentials
from src.models.sync_status import SyncStatus
from src.services.inflight_guard import InFlightGuard
from src.services.location_repository import LocationRepository
from tests.utils.factories import create_location_data
from tests.utils.helpers import InMemoryLocationRepository


AGENCY_ID = "agency_01HZX3K9"


@pytest.fixture
def agency_id():
    return AGENCY_ID


@pytest.fixture
def credentials():
    """Connected provider credentials for the test agency."""
    return ProviderCredentials(agency_id=AGENCY_ID, access_token="tok_live_abcdefghijklmnop")


@pytest.fixture
def location_data():
    """Complete, never-published location row."""
    return create_location_data(agency_id=AGENCY_ID, location_id="loc_001")


@pytest.fixture
def location(location_data):
    return Location.model_validate(location_data)


@pytest.fixture
def guard():
    """Fresh in-flight guard per test."""
    return InFlightGuard()


@pytest.fixture
def mock_repository(location, credentials):
    """Repository mock returning the sample location and credentials."""
    repository = AsyncMock(spec=LocationRepository)
    repository.get_location.return_value = location
    repository.get_credentials.return_value = credentials

    async def _update(agency_id, location_id, status, **kwargs):
        return location.model_copy(update={"sync_status": status})

    repository.update_sync_status.side_effect = _update
    return repository


@pytest.fixture
def memory_repository(location_data, credentials):
    """In-memory repository seeded with the sample location and credentials."""
    return InMemoryLocationRepository(
        locations=[location_data],
        credentials={AGENCY_ID: credentials},
    )


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for testing."""
    client = MagicMock()
    client.table = MagicMock(return_value=MagicMock())
    return client


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def mock_vercel_request():
    """Mock Vercel serverless function request."""
    return {
        "method": "POST",
        "path": "/api/listings/publish",
        "headers": {
            "x-agency-id": AGENCY_ID,
            "content-type": "application/json"
        },
        "body": '{"location_id": "loc_001"}',
        "query": {}
    }


@pytest.fixture
def status_values():
    return [status.value for status in SyncStatus]
