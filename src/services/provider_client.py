"""Async client for the local-listings provider API.

The client only builds requests and parses responses. It never touches
local state and never decides what a response means for a location's sync
status; that mapping belongs to the publish orchestrator.

Usage:
    async with ListingsProviderClient() as provider:
        access = await provider.test_access(credentials)
        result = await provider.publish(credentials, location.to_listing_payload())
"""

import json
from typing import Any, Optional

import httpx

from src.models.location import REQUIRED_PUBLISH_FIELDS
from src.models.provider import (
    AccessResult,
    ProviderCredentials,
    ProviderState,
    PublishResult,
    RemoteListingState,
    parse_remote_state,
)
from src.utils.errors import AuthError, ProviderError, TransportError, ValidationError
from src.utils.logging import get_structured_logger, mask_identifier, truncate_text
from src.utils.sync_config import SyncConfig

logger = get_structured_logger(__name__)

AUTH_STATUS_CODES = {401, 403}
# Well-formed rejections of the listing content
REJECTION_STATUS_CODES = {400, 409, 422}
# Provider is throttling; the call may succeed later
THROTTLE_STATUS_CODES = {429}


def build_listing_body(payload: dict) -> dict:
    """Map canonical listing fields onto the provider's JSON schema."""
    body: dict[str, Any] = {
        "Name": payload.get("business_name"),
        "Description": payload.get("description") or "",
        "Address": {
            "StreetAddress": payload.get("address"),
            "City": payload.get("city"),
            "StateOrProvince": payload.get("state") or "",
            "PostalCode": payload.get("zip_code") or "",
            "CountryCode": payload.get("country"),
        },
        "PhoneNumber": payload.get("phone"),
        "WebsiteUrl": payload.get("website") or "",
        "GeoCoordinates": {
            "Latitude": payload.get("latitude"),
            "Longitude": payload.get("longitude"),
        },
    }
    if payload.get("category"):
        body["BusinessCategory"] = payload["category"]
    return body


def validate_listing_payload(payload: dict) -> None:
    """Raise ValidationError naming every missing required field."""
    missing = []
    for name in REQUIRED_PUBLISH_FIELDS:
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(
            f"Missing required listing fields: {', '.join(missing)}",
            missing_fields=missing,
        )


def extract_error_message(response: httpx.Response) -> str:
    """Best-effort human-readable error from a provider response body."""
    text = response.text or ""
    try:
        data = json.loads(text) if text else {}
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict):
        for key in ("message", "Message", "error_description", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return truncate_text(value) or ""
            if isinstance(value, dict) and value.get("message"):
                return truncate_text(str(value["message"])) or ""

    return truncate_text(text) or response.reason_phrase or f"HTTP {response.status_code}"


def _parse_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


class ListingsProviderClient:
    """Async client for the provider's listings API.

    Attributes:
        base_url: Provider API root.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = SyncConfig.PROVIDER_API_BASE_URL,
        timeout: float = SyncConfig.PROVIDER_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the provider client.

        Args:
            base_url: Provider API root. Defaults to PROVIDER_API_BASE_URL.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests to stub the provider.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ListingsProviderClient":
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": SyncConfig.PROVIDER_USER_AGENT},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        credentials: ProviderCredentials,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        headers = {
            "Authorization": f"Bearer {credentials.access_token.get_secret_value()}",
            "Content-Type": "application/json",
        }
        try:
            return await client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Provider request timed out", method=method, path=path)
            raise TransportError(f"Provider request timed out ({type(e).__name__})") from e
        except httpx.RequestError as e:
            logger.warning("Provider unreachable", method=method, path=path, error_type=type(e).__name__)
            raise TransportError(f"Provider unreachable ({type(e).__name__})") from e

    def _raise_for_failure(self, response: httpx.Response, operation: str) -> None:
        """Classify non-success responses that are not returned as data."""
        status = response.status_code
        if status in AUTH_STATUS_CODES:
            raise AuthError(extract_error_message(response), status_code=status)
        if status in THROTTLE_STATUS_CODES:
            raise TransportError(f"Provider throttled {operation} (HTTP {status})")
        if not response.is_success:
            raise ProviderError(
                f"{status}: {extract_error_message(response)}",
                status_code=status,
            )

    async def test_access(self, credentials: ProviderCredentials) -> AccessResult:
        """Minimal authenticated call. Auth rejections come back as data."""
        response = await self._request("GET", "/locations", credentials, params={"top": 1})

        if response.status_code in AUTH_STATUS_CODES:
            return AccessResult(
                reachable=True,
                authorized=False,
                provider_message=extract_error_message(response),
            )
        if not response.is_success:
            raise ProviderError(
                f"{response.status_code}: {extract_error_message(response)}",
                status_code=response.status_code,
            )
        return AccessResult(reachable=True, authorized=True, provider_message="OK")

    async def publish(
        self,
        credentials: ProviderCredentials,
        payload: dict,
        provider_listing_id: Optional[str] = None,
    ) -> PublishResult:
        """
        Create (POST) or update (PUT) a listing.

        Required fields are checked before any request is made. Content
        rejections (400/409/422) are returned with ``accepted=False``.
        """
        validate_listing_payload(payload)
        body = build_listing_body(payload)

        if provider_listing_id:
            response = await self._request(
                "PUT", f"/locations/{provider_listing_id}", credentials, json=body
            )
        else:
            response = await self._request("POST", "/locations", credentials, json=body)

        logger.info(
            "Provider publish response",
            status_code=response.status_code,
            is_update=bool(provider_listing_id),
            provider_listing_id=mask_identifier(provider_listing_id) if provider_listing_id else None,
        )

        if response.status_code in REJECTION_STATUS_CODES:
            return PublishResult(
                accepted=False,
                provider_listing_id=provider_listing_id,
                provider_state=RemoteListingState.REJECTED,
                raw_status_code=response.status_code,
                provider_message=extract_error_message(response),
            )
        self._raise_for_failure(response, "publish")

        data = _parse_json(response)
        listing_id = data.get("LocationId") or data.get("Id") or data.get("id") or provider_listing_id
        return PublishResult(
            accepted=True,
            provider_listing_id=str(listing_id) if listing_id else None,
            provider_state=parse_remote_state(data.get("Status") or data.get("status")),
            listing_url=data.get("Url") or data.get("url"),
            raw_status_code=response.status_code,
            provider_message=truncate_text(data.get("Message") or data.get("message")),
        )

    async def fetch_status(
        self, credentials: ProviderCredentials, provider_listing_id: str
    ) -> ProviderState:
        """Poll the current remote state of one listing."""
        response = await self._request("GET", f"/locations/{provider_listing_id}", credentials)

        if response.status_code == 404:
            return ProviderState(
                provider_listing_id=provider_listing_id,
                state=RemoteListingState.UNKNOWN,
                provider_message="Listing not found at provider",
            )
        self._raise_for_failure(response, "fetch_status")

        data = _parse_json(response)
        return ProviderState(
            provider_listing_id=provider_listing_id,
            state=parse_remote_state(data.get("Status") or data.get("status")),
            listing_url=data.get("Url") or data.get("url"),
            provider_message=truncate_text(data.get("StatusReason") or data.get("message")),
        )

    async def delete_listing(self, credentials: ProviderCredentials, provider_listing_id: str) -> None:
        """Remove a listing. A listing that is already gone counts as deleted."""
        response = await self._request("DELETE", f"/locations/{provider_listing_id}", credentials)
        if response.status_code == 404:
            logger.info(
                "Listing already absent at provider",
                provider_listing_id=mask_identifier(provider_listing_id),
            )
            return
        self._raise_for_failure(response, "delete_listing")
