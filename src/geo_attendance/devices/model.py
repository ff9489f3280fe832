from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import ClientKind, DeviceClass, HostPlatform


@dataclass(frozen=True)
class DeviceProfile:
    """What the engine knows about the caller's device.

    Used only to pick a tolerance entry, the acquisition mode and the
    remediation hints; never for authentication.
    """

    device_id: str
    device_class: DeviceClass
    client: ClientKind = ClientKind.OTHER
    platform: HostPlatform = HostPlatform.UNKNOWN
