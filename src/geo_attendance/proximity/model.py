from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AccuracyTier, AttendanceAction
from ..facilities.model import Facility


@dataclass(frozen=True)
class Candidate:
    facility: Facility
    distance_m: float
    effective_radius_m: float

    @property
    def within_range(self) -> bool:
        return self.distance_m <= self.effective_radius_m

    def to_dict(self) -> dict:
        return {
            "facility_id": self.facility.id,
            "facility_name": self.facility.name,
            "distance_m": round(self.distance_m, 1),
            "within_range": self.within_range,
        }


@dataclass(frozen=True)
class ProximityVerdict:
    """Result of one proximity decision; recomputed for every sample."""

    action: AttendanceAction
    eligible: bool
    nearest: Optional[Candidate]
    candidates: tuple[Candidate, ...]
    accuracy_tier: AccuracyTier
    tolerance_m: float
    advisory: Optional[str] = None

    @property
    def winning(self) -> Optional[Candidate]:
        """Closest facility that is within range, if any."""
        for candidate in self.candidates:
            if candidate.within_range:
                return candidate
        return None

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "eligible": self.eligible,
            "nearest": self.nearest.to_dict() if self.nearest else None,
            "candidates": [c.to_dict() for c in self.candidates],
            "accuracy_tier": self.accuracy_tier.value,
            "advisory": self.advisory,
        }
