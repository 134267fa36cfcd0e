"""Provider-facing models: credentials and tagged call results."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, SecretStr


class ProviderCredentials(BaseModel):
    """Agency-scoped provider access. Never embedded in locations or attempts."""
    agency_id: str = Field(..., description="Owning agency ID")
    access_token: SecretStr = Field(..., description="Bearer token")
    expires_at: Optional[datetime] = None
    status: str = Field(default="connected", description="Integration status")


class RemoteListingState(str, Enum):
    """Listing state as reported by the provider, normalized."""
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"
    UNKNOWN = "UNKNOWN"


_STATE_ALIASES = {
    "active": RemoteListingState.ACTIVE,
    "live": RemoteListingState.ACTIVE,
    "published": RemoteListingState.ACTIVE,
    "pending": RemoteListingState.PENDING,
    "accepted": RemoteListingState.PENDING,
    "submitted": RemoteListingState.PENDING,
    "underreview": RemoteListingState.UNDER_REVIEW,
    "inreview": RemoteListingState.UNDER_REVIEW,
    "suspended": RemoteListingState.SUSPENDED,
    "disabled": RemoteListingState.SUSPENDED,
    "rejected": RemoteListingState.REJECTED,
}


def parse_remote_state(raw: Optional[str]) -> RemoteListingState:
    """Map a provider status string onto :class:`RemoteListingState`."""
    if not raw:
        return RemoteListingState.UNKNOWN
    key = re.sub(r"[\s_-]", "", str(raw)).lower()
    return _STATE_ALIASES.get(key, RemoteListingState.UNKNOWN)


class AccessResult(BaseModel):
    """Outcome of a connectivity test call."""
    reachable: bool
    authorized: bool
    provider_message: str = ""


class PublishResult(BaseModel):
    """Outcome of a create/update call that got a well-formed answer."""
    accepted: bool = Field(..., description="False when the provider rejected the payload")
    provider_listing_id: Optional[str] = None
    provider_state: RemoteListingState = RemoteListingState.UNKNOWN
    listing_url: Optional[str] = None
    raw_status_code: int
    provider_message: Optional[str] = None


class ProviderState(BaseModel):
    """Current remote state of one listing."""
    provider_listing_id: str
    state: RemoteListingState
    listing_url: Optional[str] = None
    provider_message: Optional[str] = None


class ProbeResult(BaseModel):
    """Connectivity probe verdict for an agency."""
    reachable: bool
    authorized: bool
    message: str

    @property
    def can_proceed(self) -> bool:
        return self.reachable and self.authorized
