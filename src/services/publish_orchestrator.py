"""Publish orchestrator - drive one listing sync attempt end to end."""

import asyncio
from typing import Optional

from src.models.location import Location
from src.models.provider import ProviderCredentials, PublishResult, RemoteListingState
from src.models.sync_attempt import AttemptOutcome, SyncAttempt
from src.models.sync_status import ProviderEvent, SyncStatus, apply_events, reset_status
from src.services.inflight_guard import InFlightGuard, get_inflight_guard
from src.services.location_repository import LocationRepository
from src.services.provider_client import ListingsProviderClient
from src.utils.errors import (
    AuthError,
    CredentialsNotFound,
    ListingSyncError,
    ProviderError,
    TransportError,
    ValidationError,
)
from src.utils.logging import get_structured_logger, log_timing, mask_identifier
from src.utils.sync_config import SyncConfig

logger = get_structured_logger(__name__)


def events_for_publish(result: PublishResult) -> list[ProviderEvent]:
    """
    Translate a well-formed publish response into status events.

    A response that already reports the listing as live (or under review)
    implies the provider accepted it first, so acceptance is applied before
    the confirmation.
    """
    if not result.accepted:
        return [ProviderEvent.REJECTED]

    state = result.provider_state
    if state is RemoteListingState.ACTIVE:
        return [ProviderEvent.ACCEPTED, ProviderEvent.CONFIRMED_LIVE]
    if state is RemoteListingState.UNDER_REVIEW:
        return [ProviderEvent.ACCEPTED, ProviderEvent.FLAGGED_FOR_REVIEW]
    if state in (RemoteListingState.SUSPENDED, RemoteListingState.REJECTED):
        return [ProviderEvent.REJECTED]
    return [ProviderEvent.ACCEPTED]


def events_for_remote_state(state: RemoteListingState) -> list[ProviderEvent]:
    """Translate a polled remote state into status events. Pending and unknown say nothing."""
    if state is RemoteListingState.ACTIVE:
        return [ProviderEvent.CONFIRMED_LIVE]
    if state is RemoteListingState.UNDER_REVIEW:
        return [ProviderEvent.FLAGGED_FOR_REVIEW]
    if state in (RemoteListingState.SUSPENDED, RemoteListingState.REJECTED):
        return [ProviderEvent.REJECTED]
    return []


class PublishOrchestrator:
    """Publishes locations and owns every write to their sync status."""

    def __init__(
        self,
        provider: ListingsProviderClient,
        repository: Optional[LocationRepository] = None,
        guard: Optional[InFlightGuard] = None,
        publish_timeout: float = SyncConfig.PUBLISH_TIMEOUT_SECONDS,
    ):
        self.provider = provider
        self.repository = repository or LocationRepository()
        self.guard = guard or get_inflight_guard()
        self.publish_timeout = publish_timeout

    async def _reload(self, agency_id: str, location: Location) -> Location:
        """Fresh copy of the row. Only valid while the guard is held."""
        current = await self.repository.get_location(agency_id, location.id)
        if current is None:
            raise ValidationError(f"Location {location.id} not found for this agency")
        return current

    async def _resolve_credentials(self, agency_id: str) -> ProviderCredentials:
        credentials = await self.repository.get_credentials(agency_id)
        if credentials is None:
            raise CredentialsNotFound(f"No provider credentials configured for agency {agency_id}")
        return credentials

    def _failed_attempt(
        self, agency_id: str, location: Location, error: ListingSyncError
    ) -> SyncAttempt:
        logger.warning(
            "Publish attempt failed, status unchanged",
            agency_id=mask_identifier(agency_id),
            location_id=location.id,
            error_kind=error.kind.value,
            sync_status=location.sync_status.value,
        )
        return SyncAttempt(
            location_id=location.id,
            agency_id=agency_id,
            outcome=AttemptOutcome.FAILURE,
            previous_status=location.sync_status,
            resulting_status=location.sync_status,
            provider_listing_id=location.provider_listing_id,
            error_kind=error.kind,
            error_detail=str(error),
        )

    async def publish_location(self, agency_id: str, location: Location) -> SyncAttempt:
        """
        Publish one location and persist the resulting status.

        Raises AlreadyInProgress, CredentialsNotFound or ValidationError
        before any provider call. Transport, auth and provider-side failures
        come back as a failed attempt with the status untouched.
        """
        async with self.guard.hold(agency_id, location.id):
            location = await self._reload(agency_id, location)
            credentials = await self._resolve_credentials(agency_id)

            missing = location.missing_publish_fields()
            if missing:
                raise ValidationError(
                    f"Location is missing required fields: {', '.join(missing)}",
                    missing_fields=missing,
                )

            current = location.sync_status
            try:
                with log_timing(
                    "provider_publish",
                    logger=logger,
                    agency_id=mask_identifier(agency_id),
                    location_id=location.id,
                ):
                    result = await asyncio.wait_for(
                        self.provider.publish(
                            credentials,
                            location.to_listing_payload(),
                            provider_listing_id=location.provider_listing_id,
                        ),
                        timeout=self.publish_timeout,
                    )
            except asyncio.TimeoutError:
                return self._failed_attempt(
                    agency_id,
                    location,
                    TransportError(f"Provider did not answer within {self.publish_timeout:g}s"),
                )
            except ProviderError as e:
                if e.status_code is not None and e.status_code >= 500:
                    # Provider-side outage, not a verdict on the listing
                    e = TransportError(f"Provider unavailable (HTTP {e.status_code})")
                return self._failed_attempt(agency_id, location, e)
            except (TransportError, AuthError) as e:
                return self._failed_attempt(agency_id, location, e)

            new_status = apply_events(current, events_for_publish(result))
            provider_listing_id = result.provider_listing_id or location.provider_listing_id

            await self.repository.update_sync_status(
                agency_id,
                location.id,
                new_status,
                provider_listing_id=provider_listing_id,
                listing_url=result.listing_url,
                expected_status=current,
            )

            logger.info(
                "Publish attempt completed",
                agency_id=mask_identifier(agency_id),
                location_id=location.id,
                previous_status=current.value,
                resulting_status=new_status.value,
                provider_accepted=result.accepted,
                provider_status_code=result.raw_status_code,
            )

            if not result.accepted:
                return SyncAttempt(
                    location_id=location.id,
                    agency_id=agency_id,
                    outcome=AttemptOutcome.FAILURE,
                    previous_status=current,
                    resulting_status=new_status,
                    provider_listing_id=provider_listing_id,
                    error_kind=ProviderError.kind,
                    error_detail=result.provider_message or "no reason given",
                )

            return SyncAttempt(
                location_id=location.id,
                agency_id=agency_id,
                outcome=AttemptOutcome.SUCCESS,
                previous_status=current,
                resulting_status=new_status,
                provider_listing_id=provider_listing_id,
            )

    async def unlink_location(self, agency_id: str, location: Location) -> Location:
        """Delete the provider listing and reset the location to PendingUpload."""
        async with self.guard.hold(agency_id, location.id):
            location = await self._reload(agency_id, location)
            if not location.provider_listing_id:
                raise ValidationError(
                    "Location is not linked to a provider listing",
                    missing_fields=["provider_listing_id"],
                )
            credentials = await self._resolve_credentials(agency_id)

            try:
                await asyncio.wait_for(
                    self.provider.delete_listing(credentials, location.provider_listing_id),
                    timeout=self.publish_timeout,
                )
            except asyncio.TimeoutError as e:
                raise TransportError(
                    f"Provider did not answer within {self.publish_timeout:g}s"
                ) from e
            updated = await self.repository.reset_sync_state(agency_id, location.id)

            logger.info(
                "Location unlinked from provider",
                agency_id=mask_identifier(agency_id),
                location_id=location.id,
                previous_status=location.sync_status.value,
                resulting_status=reset_status().value,
            )
            return updated
