from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from ..core.enums import PositionSource


@dataclass(frozen=True)
class Coord:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class PositionSample:
    """Domain entity: one position fix, immutable once produced."""

    latitude: float
    longitude: float
    accuracy_m: float
    captured_at: datetime
    source: PositionSource

    @property
    def coord(self) -> Coord:
        return Coord(self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy_m": self.accuracy_m,
            "captured_at": self.captured_at.isoformat(),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class AcquireOptions:
    """Request settings handed to the platform positioning provider."""

    high_accuracy: bool
    timeout_s: float
    maximum_age_s: float = 0.0


@dataclass(frozen=True)
class RawFix:
    """What a provider returns before the acquirer turns it into a sample."""

    latitude: float
    longitude: float
    accuracy_m: float


@dataclass(frozen=True)
class Single:
    pass


@dataclass(frozen=True)
class Sampled:
    count: int = 3

    def __post_init__(self):
        if self.count < 1:
            raise ValueError("Sampled mode needs at least one reading")


AcquireMode = Union[Single, Sampled]
