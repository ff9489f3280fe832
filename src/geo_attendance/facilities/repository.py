from __future__ import annotations

import logging
import time as _time
from typing import Callable, Optional, Protocol, Sequence

from .model import Facility

logger = logging.getLogger(__name__)


class FacilityDirectory(Protocol):
    def list_active_facilities(self) -> Sequence[Facility]:
        raise NotImplementedError


class InMemoryFacilityDirectory:
    def __init__(self, facilities: Sequence[Facility] = ()):
        self._facilities = list(facilities)

    def replace(self, facilities: Sequence[Facility]) -> None:
        """Push-style update from an external directory."""
        self._facilities = list(facilities)

    def list_active_facilities(self) -> Sequence[Facility]:
        return sorted((f for f in self._facilities if f.is_active), key=lambda f: f.id)


class CachedFacilityDirectory:
    """Read-through cache over another directory, refreshed on a TTL.

    A failed refresh keeps serving the last good list; with no list at all the
    error propagates.
    """

    def __init__(
        self,
        source: FacilityDirectory,
        *,
        ttl_seconds: float = 300,
        monotonic: Callable[[], float] = _time.monotonic,
    ):
        self._source = source
        self._ttl = float(ttl_seconds)
        self._monotonic = monotonic
        self._cached: Optional[list[Facility]] = None
        self._loaded_at = 0.0

    def invalidate(self) -> None:
        self._cached = None

    def refresh(self) -> Sequence[Facility]:
        try:
            facilities = sorted(self._source.list_active_facilities(), key=lambda f: f.id)
        except Exception:
            if self._cached is None:
                raise
            logger.exception("Facility refresh failed; serving %d cached facilities", len(self._cached))
            self._loaded_at = self._monotonic()
            return list(self._cached)
        self._cached = facilities
        self._loaded_at = self._monotonic()
        return list(facilities)

    def list_active_facilities(self) -> Sequence[Facility]:
        if self._cached is None or self._monotonic() - self._loaded_at >= self._ttl:
            return self.refresh()
        return list(self._cached)

    def get(self, facility_id: str) -> Optional[Facility]:
        for facility in self.list_active_facilities():
            if facility.id == facility_id:
                return facility
        return None
