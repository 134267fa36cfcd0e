"""Connectivity prober - validate an agency's provider access before publishing."""

from typing import Optional

from src.models.provider import ProbeResult
from src.services.location_repository import LocationRepository
from src.services.provider_client import ListingsProviderClient
from src.utils.errors import AuthError, ProviderError, SupabaseError, TransportError
from src.utils.logging import get_structured_logger, log_timing, mask_identifier

logger = get_structured_logger(__name__)

NOT_CONNECTED_MESSAGE = "No provider account is connected for this agency. Connect an account and try again."
UNAUTHORIZED_MESSAGE = "The provider refused the stored credentials. Reconnect the account to refresh access."
UNREACHABLE_MESSAGE = "The provider could not be reached. Try again later."
READY_MESSAGE = "Provider reachable and credentials accepted."


class ConnectivityProber:
    """Runs the lightweight access check. Never mutates any location."""

    def __init__(
        self,
        provider: ListingsProviderClient,
        repository: Optional[LocationRepository] = None,
    ):
        self.provider = provider
        self.repository = repository or LocationRepository()

    async def probe(self, agency_id: str) -> ProbeResult:
        """
        Check reachability and authorization for an agency.

        Provider-side failures are folded into the result; only repository
        faults propagate.
        """
        try:
            credentials = await self.repository.get_credentials(agency_id)
        except SupabaseError:
            logger.error("Credential lookup failed", agency_id=mask_identifier(agency_id), exc_info=True)
            raise

        if credentials is None:
            return ProbeResult(reachable=True, authorized=False, message=NOT_CONNECTED_MESSAGE)

        try:
            with log_timing("provider_test_access", logger=logger, agency_id=mask_identifier(agency_id)):
                access = await self.provider.test_access(credentials)
        except TransportError as e:
            logger.warning("Provider unreachable during probe", agency_id=mask_identifier(agency_id), error=str(e))
            return ProbeResult(reachable=False, authorized=False, message=UNREACHABLE_MESSAGE)
        except AuthError:
            return ProbeResult(reachable=True, authorized=False, message=UNAUTHORIZED_MESSAGE)
        except ProviderError as e:
            # The provider answered but is failing; treat as an outage
            logger.warning("Provider error during probe", agency_id=mask_identifier(agency_id), status_code=e.status_code)
            return ProbeResult(reachable=False, authorized=False, message=UNREACHABLE_MESSAGE)

        if not access.authorized:
            return ProbeResult(reachable=True, authorized=False, message=UNAUTHORIZED_MESSAGE)

        return ProbeResult(reachable=True, authorized=True, message=READY_MESSAGE)
