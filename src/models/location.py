"""Location models."""

from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from src.models.sync_status import SyncStatus


REQUIRED_PUBLISH_FIELDS = (
    "business_name",
    "address",
    "city",
    "country",
    "phone",
    "latitude",
    "longitude",
)


class Location(BaseModel):
    """Business listing owned by one agency."""
    id: str = Field(..., description="Location ID")
    agency_id: str = Field(..., description="Owning agency ID")
    business_name: Optional[str] = Field(None, description="Display name")
    address: Optional[str] = Field(None, description="Street address")
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = Field(None, description="ISO country code")
    phone: Optional[str] = None
    website: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    opening_hours: Optional[Any] = Field(None, description="Opening hours (JSON or preformatted string)")
    sync_status: SyncStatus = Field(default=SyncStatus.PENDING_UPLOAD, description="Provider sync status")
    provider_listing_id: Optional[str] = Field(None, description="Listing ID assigned by the provider")
    provider_listing_url: Optional[str] = None
    last_synced_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("sync_status", mode="before")
    @classmethod
    def _read_stored_status(cls, value):
        return SyncStatus.from_stored(value)

    def missing_publish_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        missing = []
        for name in REQUIRED_PUBLISH_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing

    def to_listing_payload(self) -> dict:
        """Canonical listing fields sent to the provider."""
        return {
            "business_name": self.business_name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "phone": self.phone,
            "website": self.website,
            "category": self.category,
            "description": self.description,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
