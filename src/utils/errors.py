"""Error handling utilities."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to callers."""
    VALIDATION = "ValidationError"
    CREDENTIALS_NOT_FOUND = "CredentialsNotFound"
    AUTH = "AuthError"
    TRANSPORT = "TransportError"
    PROVIDER = "ProviderError"
    ALREADY_IN_PROGRESS = "AlreadyInProgress"
    STORAGE = "StorageError"


class ListingSyncError(Exception):
    """Base exception for the listing sync backend."""
    kind: ErrorKind = ErrorKind.PROVIDER
    retryable: bool = False


class ValidationError(ListingSyncError):
    """Malformed or incomplete input. Never retried."""
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []


class CredentialsNotFound(ListingSyncError):
    """The agency has no provider credentials configured."""
    kind = ErrorKind.CREDENTIALS_NOT_FOUND


class AuthError(ListingSyncError):
    """Provider refused the credentials (401/403)."""
    kind = ErrorKind.AUTH

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(ListingSyncError):
    """Network failure or timeout talking to the provider."""
    kind = ErrorKind.TRANSPORT
    retryable = True


class ProviderError(ListingSyncError):
    """Provider answered with a non-success response."""
    kind = ErrorKind.PROVIDER

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AlreadyInProgress(ListingSyncError):
    """Another sync for the same location is in flight."""
    kind = ErrorKind.ALREADY_IN_PROGRESS
    retryable = True


class SupabaseError(ListingSyncError):
    """Supabase operation error."""
    kind = ErrorKind.STORAGE
