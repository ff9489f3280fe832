"""Pure proximity decisions: no I/O and no mutable state."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from ..core.constants import EARTH_RADIUS_M, GOOD_ACCURACY_M, MODERATE_ACCURACY_M, POOR_ACCURACY_M
from ..core.enums import AccuracyTier, AttendanceAction, HostPlatform
from ..facilities.model import Facility
from ..positioning.model import Coord, PositionSample
from .model import Candidate, ProximityVerdict


def distance_meters(a: Coord, b: Coord) -> float:
    """Great-circle (haversine) distance in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _facility_coord(facility: Facility) -> Coord:
    return Coord(facility.latitude, facility.longitude)


def nearest(sample: PositionSample, facilities: Sequence[Facility]) -> Optional[tuple[Facility, float]]:
    """Linear scan; on equal distance the earlier facility wins."""
    best: Optional[tuple[Facility, float]] = None
    for facility in facilities:
        d = distance_meters(sample.coord, _facility_coord(facility))
        if best is None or d < best[1]:
            best = (facility, d)
    return best


def accuracy_tier(accuracy_m: float) -> AccuracyTier:
    if accuracy_m <= GOOD_ACCURACY_M:
        return AccuracyTier.GOOD
    if accuracy_m <= MODERATE_ACCURACY_M:
        return AccuracyTier.MODERATE
    if accuracy_m <= POOR_ACCURACY_M:
        return AccuracyTier.POOR
    return AccuracyTier.CRITICAL


def accuracy_advisory(tier: AccuracyTier, accuracy_m: float, platform: HostPlatform = HostPlatform.UNKNOWN) -> Optional[str]:
    if tier == AccuracyTier.GOOD:
        return None
    if tier == AccuracyTier.MODERATE:
        return f"GPS accuracy: {round(accuracy_m)}m. Consider using the facility code for a guaranteed check-in."
    if tier == AccuracyTier.POOR:
        if platform == HostPlatform.WINDOWS:
            return (
                f"GPS accuracy is low ({round(accuracy_m)}m). Move near a window, make sure Windows "
                "Location Services are enabled, or use the facility code."
            )
        return f"GPS accuracy is low ({round(accuracy_m)}m). Move to an open area or use the facility code."
    return (
        f"GPS accuracy is extremely poor ({accuracy_m / 1000:.1f}km); the browser is probably using "
        "IP-based location. Use the facility code or switch to a browser with GPS support."
    )


def _verdict(
    action: AttendanceAction,
    sample: PositionSample,
    facilities: Sequence[Facility],
    tolerance_m: float,
    platform: HostPlatform,
) -> ProximityVerdict:
    candidates = sorted(
        (
            Candidate(
                facility=f,
                distance_m=distance_meters(sample.coord, _facility_coord(f)),
                effective_radius_m=max(float(f.radius_m), float(tolerance_m)),
            )
            for f in facilities
        ),
        key=lambda c: (c.distance_m, c.facility.id),
    )
    tier = accuracy_tier(sample.accuracy_m)
    return ProximityVerdict(
        action=action,
        eligible=any(c.within_range for c in candidates),
        nearest=candidates[0] if candidates else None,
        candidates=tuple(candidates),
        accuracy_tier=tier,
        tolerance_m=float(tolerance_m),
        advisory=accuracy_advisory(tier, sample.accuracy_m, platform),
    )


def validate_check_in(
    sample: PositionSample,
    facilities: Sequence[Facility],
    tolerance_m: float,
    *,
    platform: HostPlatform = HostPlatform.UNKNOWN,
) -> ProximityVerdict:
    return _verdict(AttendanceAction.CHECK_IN, sample, facilities, tolerance_m, platform)


def validate_check_out(
    sample: PositionSample,
    facilities: Sequence[Facility],
    tolerance_m: float,
    *,
    platform: HostPlatform = HostPlatform.UNKNOWN,
) -> ProximityVerdict:
    return _verdict(AttendanceAction.CHECK_OUT, sample, facilities, tolerance_m, platform)


def validate_facility_code(
    sample: PositionSample,
    facility: Facility,
    limit_m: float,
    *,
    action: AttendanceAction = AttendanceAction.CHECK_IN,
    platform: HostPlatform = HostPlatform.UNKNOWN,
) -> ProximityVerdict:
    """Verdict for a scanned code: only the named facility, fixed limit."""
    candidate = Candidate(
        facility=facility,
        distance_m=distance_meters(sample.coord, _facility_coord(facility)),
        effective_radius_m=float(limit_m),
    )
    tier = accuracy_tier(sample.accuracy_m)
    return ProximityVerdict(
        action=action,
        eligible=candidate.within_range,
        nearest=candidate,
        candidates=(candidate,),
        accuracy_tier=tier,
        tolerance_m=float(limit_m),
        advisory=accuracy_advisory(tier, sample.accuracy_m, platform),
    )
