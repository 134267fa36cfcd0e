"""Test helper functions."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx

from src.models.location import Location
from src.models.provider import ProviderCredentials
from src.models.sync_status import SyncStatus
from src.services.location_repository import LocationRepository
from src.services.provider_client import ListingsProviderClient
from src.utils.errors import AlreadyInProgress

PROVIDER_BASE_URL = "https://provider.test/v1"


class ProviderStub:
    """
    Scripted provider. Each route maps ``(method, path)`` to either an
    ``httpx.Response``, an exception to raise, or a callable.
    """

    def __init__(self, delay: float = 0.0):
        self.routes: Dict[tuple, Any] = {}
        self.calls: list[httpx.Request] = []
        self.delay = delay

    def on(self, method: str, path: str, response: Any) -> "ProviderStub":
        self.routes[(method, path)] = response
        return self

    def calls_for(self, method: str) -> list[httpx.Request]:
        return [call for call in self.calls if call.method == method]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        path = request.url.path.replace("/v1", "", 1)
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": "no route"})
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        return route

    def client(self) -> ListingsProviderClient:
        return ListingsProviderClient(
            base_url=PROVIDER_BASE_URL,
            transport=httpx.MockTransport(self),
        )


class InMemoryLocationRepository(LocationRepository):
    """Dict-backed repository with the same conditional-update semantics."""

    def __init__(self, locations: list[dict], credentials: Dict[str, ProviderCredentials]):
        super().__init__()
        self.rows = {(row["agency_id"], row["id"]): dict(row) for row in locations}
        self.credentials = credentials
        self.updates: list[dict] = []

    async def get_location(self, agency_id: str, location_id: str) -> Optional[Location]:
        row = self.rows.get((agency_id, location_id))
        return Location.model_validate(row) if row else None

    async def get_credentials(self, agency_id: str) -> Optional[ProviderCredentials]:
        return self.credentials.get(agency_id)

    async def update_sync_status(
        self,
        agency_id,
        location_id,
        status,
        provider_listing_id=None,
        listing_url=None,
        expected_status=None,
    ) -> Location:
        row = self.rows.get((agency_id, location_id))
        if row is None:
            raise AlreadyInProgress("missing row")
        stored = SyncStatus.from_stored(row.get("sync_status"))
        if expected_status is not None and stored is not expected_status:
            raise AlreadyInProgress("status changed")
        row["sync_status"] = status.value
        row["last_synced_at"] = datetime.now(timezone.utc).isoformat()
        if provider_listing_id:
            row["provider_listing_id"] = provider_listing_id
        if listing_url:
            row["provider_listing_url"] = listing_url
        self.updates.append({"location_id": location_id, "status": status})
        return Location.model_validate(row)

    async def reset_sync_state(self, agency_id: str, location_id: str) -> Location:
        row = self.rows[(agency_id, location_id)]
        row.update(
            sync_status=SyncStatus.PENDING_UPLOAD.value,
            provider_listing_id=None,
            provider_listing_url=None,
            last_synced_at=None,
        )
        return Location.model_validate(row)

    async def list_locations_by_status(self, agency_id, statuses) -> list[Location]:
        values = {s.value for s in statuses}
        return [
            Location.model_validate(row)
            for (aid, _), row in self.rows.items()
            if aid == agency_id and (row.get("sync_status") or "pending_upload") in values
        ]

    async def list_syncable_locations(self, agency_id, statuses) -> list[Location]:
        return [
            location
            for location in await self.list_locations_by_status(agency_id, statuses)
            if location.provider_listing_id
        ]

    def status_of(self, agency_id: str, location_id: str) -> SyncStatus:
        return SyncStatus.from_stored(self.rows[(agency_id, location_id)].get("sync_status"))


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8")) if request.content else {}


def create_vercel_request(
    method: str = "POST",
    path: str = "/api/listings/publish",
    body: Dict[str, Any] = None,
    headers: Dict[str, str] = None,
    query: Dict[str, str] = None,
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if body is None:
        body = {}

    if headers is None:
        headers = {
            "content-type": "application/json"
        }

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else body,
        "query": query or {}
    }
