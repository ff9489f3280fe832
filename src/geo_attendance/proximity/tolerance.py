from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..core.enums import AttendanceAction, ClientKind, DeviceClass


@dataclass(frozen=True)
class DeviceRadius:
    check_in_m: float
    check_out_m: float

    def for_action(self, action: AttendanceAction) -> float:
        return self.check_in_m if action == AttendanceAction.CHECK_IN else self.check_out_m


def resolve_tolerance(
    device_radius_m: Optional[float],
    client_tolerances: Optional[Mapping[ClientKind, float]],
    global_fallback_m: float,
    *,
    client: ClientKind = ClientKind.OTHER,
) -> float:
    """Pick exactly one tolerance source.

    Priority: device-class radius when configured, then the client table entry
    (the caller passes ``None`` when the table is disabled), then the global
    fallback. Sources are never combined.
    """
    if device_radius_m is not None:
        return float(device_radius_m)
    if client_tolerances:
        entry = client_tolerances.get(client)
        if entry is None:
            entry = client_tolerances.get(ClientKind.OTHER)
        if entry is not None:
            return float(entry)
    return float(global_fallback_m)


@dataclass(frozen=True)
class ToleranceProfile:
    """Configuration resolving to one effective radius per decision."""

    device_radii: Mapping[DeviceClass, DeviceRadius] = field(default_factory=dict)
    client_tolerances: Mapping[ClientKind, float] = field(default_factory=dict)
    client_tolerance_enabled: bool = False
    global_fallback_m: float = 100.0

    def resolve(self, device_class: DeviceClass, action: AttendanceAction, client: ClientKind = ClientKind.OTHER) -> float:
        radius = self.device_radii.get(device_class)
        return resolve_tolerance(
            radius.for_action(action) if radius else None,
            self.client_tolerances if self.client_tolerance_enabled else None,
            self.global_fallback_m,
            client=client,
        )
