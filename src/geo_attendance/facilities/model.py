from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional


@dataclass(frozen=True)
class Facility:
    """Domain entity: a physical site with a circular geofence.

    Owned by the facility directory; read-only to the engine.
    """

    id: str
    name: str
    latitude: float
    longitude: float
    radius_m: float
    check_in_window_start: Optional[time] = None
    check_in_window_end: Optional[time] = None
    standard_end_time: Optional[time] = None
    requires_early_checkout_reason: bool = False
    is_active: bool = True

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "latitude": self.latitude, "longitude": self.longitude}
