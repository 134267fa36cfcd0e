"""Sync attempt and caller-facing result models."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field
from ulid import ULID

from src.models.sync_status import SyncStatus
from src.utils.errors import ErrorKind


def generate_attempt_id() -> str:
    """Generate a text-based attempt ID (ULID format)."""
    return str(ULID())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class SyncAttempt(BaseModel):
    """One publish attempt. Ephemeral unless the caller chooses to keep it."""
    attempt_id: str = Field(default_factory=generate_attempt_id)
    location_id: str
    agency_id: str
    attempted_at: str = Field(default_factory=utc_now_iso)
    outcome: AttemptOutcome
    previous_status: SyncStatus
    resulting_status: SyncStatus
    provider_listing_id: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS

    @property
    def status_changed(self) -> bool:
        return self.previous_status is not self.resulting_status


class OperationResult(BaseModel):
    """Discriminated success/failure result handed to UI or batch callers."""
    success: bool
    data: Optional[Any] = None
    error_message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
