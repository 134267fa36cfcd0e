"""Per-location in-flight marker for publish and reconciliation work."""

import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from src.utils.errors import AlreadyInProgress
from src.utils.logging import get_structured_logger, mask_identifier

logger = get_structured_logger(__name__)


class InFlightGuard:
    """
    Non-blocking mutual exclusion keyed by ``(agency_id, location_id)``.

    Acquisition never waits: a held key raises AlreadyInProgress at once.
    """

    def __init__(self):
        self._held: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def try_acquire(self, agency_id: str, location_id: str) -> bool:
        key = (agency_id, location_id)
        with self._lock:
            if key in self._held:
                return False
            self._held.add(key)
            return True

    def release(self, agency_id: str, location_id: str) -> None:
        with self._lock:
            self._held.discard((agency_id, location_id))

    def is_held(self, agency_id: str, location_id: str) -> bool:
        with self._lock:
            return (agency_id, location_id) in self._held

    @asynccontextmanager
    async def hold(self, agency_id: str, location_id: str) -> AsyncIterator[None]:
        """Hold the marker for the body; released on every exit path."""
        if not self.try_acquire(agency_id, location_id):
            logger.info(
                "Location already in flight",
                agency_id=mask_identifier(agency_id),
                location_id=location_id,
            )
            raise AlreadyInProgress(f"A sync for location {location_id} is already in progress")
        try:
            yield
        finally:
            self.release(agency_id, location_id)


# Global guard instance for single-process deployments
_inflight_guard: Optional[InFlightGuard] = None


def get_inflight_guard() -> InFlightGuard:
    """Get or create the process-wide guard."""
    global _inflight_guard
    if _inflight_guard is None:
        _inflight_guard = InFlightGuard()
    return _inflight_guard
