"""Result reporter - turn attempts and errors into caller-facing results.

This is the only layer that writes human-facing messages. Each error kind
has its own wording so a transport failure is never shown as a rejection.
"""

from typing import Any, Union

from src.models.sync_attempt import OperationResult, SyncAttempt
from src.models.sync_status import SyncStatus
from src.utils.errors import ErrorKind, ListingSyncError, ValidationError
from src.utils.logging import truncate_text

KIND_MESSAGES = {
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.CREDENTIALS_NOT_FOUND: (
        "No provider account is connected for this agency. "
        "Connect an account in the integration settings before publishing."
    ),
    ErrorKind.AUTH: (
        "The provider refused the agency's credentials. "
        "Reconnect the account to refresh access."
    ),
    ErrorKind.TRANSPORT: (
        "The provider could not be reached. The listing status was not changed; "
        "try again in a few minutes."
    ),
    ErrorKind.PROVIDER: "The provider returned an error. The listing status was not changed",
    ErrorKind.ALREADY_IN_PROGRESS: (
        "A sync for this location is already running. Try again shortly."
    ),
    ErrorKind.STORAGE: "The listing data could not be saved. Try again shortly.",
}

REJECTION_MESSAGE = "The provider rejected the listing"


def message_for(kind: ErrorKind, detail: Union[str, None] = None, rejected: bool = False) -> str:
    """Stable message for a kind, with the provider/validation reason where useful."""
    base = REJECTION_MESSAGE if rejected and kind is ErrorKind.PROVIDER else KIND_MESSAGES[kind]
    if kind in (ErrorKind.VALIDATION, ErrorKind.PROVIDER) and detail:
        return f"{base}: {truncate_text(detail)}"
    return base


def _attempt_data(attempt: SyncAttempt) -> dict[str, Any]:
    return {
        "attempt_id": attempt.attempt_id,
        "location_id": attempt.location_id,
        "attempted_at": attempt.attempted_at,
        "outcome": attempt.outcome.value,
        "previous_status": attempt.previous_status.value,
        "sync_status": attempt.resulting_status.value,
        "provider_listing_id": attempt.provider_listing_id,
    }


def normalize(attempt_or_error: Union[SyncAttempt, ListingSyncError]) -> OperationResult:
    """Normalize a sync attempt or a classified error into an OperationResult."""
    if isinstance(attempt_or_error, SyncAttempt):
        attempt = attempt_or_error
        if attempt.succeeded:
            return OperationResult(success=True, data=_attempt_data(attempt))
        kind = attempt.error_kind or ErrorKind.PROVIDER
        detail = attempt.error_detail if kind is ErrorKind.PROVIDER else None
        # Only a listing that ended up Suspended was rejected
        rejected = attempt.resulting_status is SyncStatus.SUSPENDED
        return OperationResult(
            success=False,
            data=_attempt_data(attempt),
            error_message=message_for(kind, detail, rejected=rejected),
            error_kind=kind,
        )

    error = attempt_or_error
    if isinstance(error, ValidationError) and error.missing_fields:
        detail = f"missing {', '.join(error.missing_fields)}"
        data = {"missing_fields": error.missing_fields}
    else:
        detail = str(error)
        data = None
    return OperationResult(
        success=False,
        data=data,
        error_message=message_for(error.kind, detail),
        error_kind=error.kind,
    )
