"""Sync status state machine for provider listings.

The stored values match the ``locations.sync_status`` CHECK constraint. The
constraint SQL is generated from :class:`SyncStatus` so the enumeration and
the database stay one artifact.
"""

from enum import Enum
from typing import Iterable, Optional


class SyncStatus(str, Enum):
    """Closed set of states a location can hold relative to the provider."""
    ACTIVE = "Active"
    PENDING = "Pending"
    SUSPENDED = "Suspended"
    UNDER_REVIEW = "Under Review"
    PENDING_UPLOAD = "pending_upload"

    @classmethod
    def from_stored(cls, value: Optional[str]) -> "SyncStatus":
        """Read a stored column value. Null means nothing was ever sent."""
        if value is None or value == "":
            return cls.PENDING_UPLOAD
        if isinstance(value, cls):
            return value
        return cls(value)


class ProviderEvent(str, Enum):
    """Explicit provider signals that may move a location between states."""
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    FLAGGED_FOR_REVIEW = "FlaggedForReview"
    CONFIRMED_LIVE = "ConfirmedLive"
    TRANSIENT_FAILURE = "TransientFailure"


_TRANSITIONS: dict[tuple[SyncStatus, ProviderEvent], SyncStatus] = {
    (SyncStatus.PENDING_UPLOAD, ProviderEvent.ACCEPTED): SyncStatus.PENDING,
    (SyncStatus.PENDING_UPLOAD, ProviderEvent.REJECTED): SyncStatus.SUSPENDED,
    (SyncStatus.PENDING, ProviderEvent.CONFIRMED_LIVE): SyncStatus.ACTIVE,
    (SyncStatus.UNDER_REVIEW, ProviderEvent.CONFIRMED_LIVE): SyncStatus.ACTIVE,
    (SyncStatus.PENDING, ProviderEvent.FLAGGED_FOR_REVIEW): SyncStatus.UNDER_REVIEW,
    (SyncStatus.ACTIVE, ProviderEvent.REJECTED): SyncStatus.SUSPENDED,
    (SyncStatus.UNDER_REVIEW, ProviderEvent.REJECTED): SyncStatus.SUSPENDED,
    (SyncStatus.PENDING, ProviderEvent.REJECTED): SyncStatus.SUSPENDED,
    (SyncStatus.SUSPENDED, ProviderEvent.ACCEPTED): SyncStatus.PENDING,
}


def next_status(current: SyncStatus, event: ProviderEvent) -> SyncStatus:
    """
    Apply one provider event to a status.

    Transient failures never move a location. Pairs without an entry in the
    table leave the status unchanged rather than guessing.
    """
    if event is ProviderEvent.TRANSIENT_FAILURE:
        return current
    return _TRANSITIONS.get((current, event), current)


def apply_events(current: SyncStatus, events: Iterable[ProviderEvent]) -> SyncStatus:
    """Fold a sequence of events over a starting status."""
    status = current
    for event in events:
        status = next_status(status, event)
    return status


def reset_status() -> SyncStatus:
    """Status after an explicit reset (unlink)."""
    return SyncStatus.PENDING_UPLOAD


def sync_status_check_constraint_sql(
    table: str = "locations",
    column: str = "sync_status",
) -> str:
    """Build the migration that pins the column to the enumeration."""
    constraint = f"{table}_{column}_check"
    allowed = ", ".join(f"'{status.value}'" for status in SyncStatus)
    return (
        f"ALTER TABLE public.{table} DROP CONSTRAINT IF EXISTS {constraint};\n"
        f"ALTER TABLE public.{table} ADD CONSTRAINT {constraint} "
        f"CHECK ({column} IN ({allowed}));\n"
        f"ALTER TABLE public.{table} ALTER COLUMN {column} "
        f"SET DEFAULT '{SyncStatus.PENDING_UPLOAD.value}';\n"
    )
