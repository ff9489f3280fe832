"""Remediation hints per error kind and host platform.

The hint text is for people; callers branch on the error kind only.
"""

from __future__ import annotations

from ..core.enums import PositionErrorKind, HostPlatform
from ..core.exceptions import PermissionDenied, PositionError, PositionUnavailable, TimedOut

_QR_FALLBACK = "Alternatively, scan the facility code to check in."

_HINTS = {
    PositionErrorKind.PERMISSION_DENIED: {
        HostPlatform.WINDOWS: (
            "Open Settings > Privacy & Security > Location, turn on Location services "
            "and allow apps to access your location, then allow location in the browser."
        ),
        HostPlatform.MACOS: (
            "Open System Settings > Privacy & Security > Location Services and enable it "
            "for your browser, then allow location for this site."
        ),
        HostPlatform.ANDROID: "Open Settings > Location, turn it on and allow location for your browser.",
        HostPlatform.IOS: "Open Settings > Privacy > Location Services and allow location for your browser.",
        HostPlatform.LINUX: "Allow location for this site in the browser's site settings.",
        HostPlatform.UNKNOWN: "Allow location access in your browser settings and try again.",
    },
    PositionErrorKind.POSITION_UNAVAILABLE: {
        HostPlatform.WINDOWS: (
            "Check that Windows Location Services are enabled, connect to Wi-Fi for "
            "assisted positioning and move near a window."
        ),
        HostPlatform.MACOS: "Turn on Wi-Fi so macOS can estimate your position.",
        HostPlatform.ANDROID: "Switch location mode to high accuracy and move to an open area.",
        HostPlatform.IOS: "Turn on Precise Location for your browser and move to an open area.",
        HostPlatform.LINUX: "Check that a location service (e.g. GeoClue) is running.",
        HostPlatform.UNKNOWN: "Check your GPS settings and move to a place with better signal.",
    },
    PositionErrorKind.TIMED_OUT: {
        HostPlatform.WINDOWS: (
            "Windows Location Services did not answer in time. Make sure they are enabled "
            "and the internet connection is active, then try again."
        ),
        HostPlatform.MACOS: "The location request timed out. Check Wi-Fi and try again.",
        HostPlatform.ANDROID: "The GPS fix took too long. Move outdoors or near a window and retry.",
        HostPlatform.IOS: "The GPS fix took too long. Move outdoors or near a window and retry.",
        HostPlatform.LINUX: "The location request timed out. Try again.",
        HostPlatform.UNKNOWN: "The location request timed out. Try again.",
    },
}

_ERRORS = {
    PositionErrorKind.PERMISSION_DENIED: (PermissionDenied, "Location access denied"),
    PositionErrorKind.POSITION_UNAVAILABLE: (PositionUnavailable, "Location information is unavailable"),
    PositionErrorKind.TIMED_OUT: (TimedOut, "Location request timed out"),
}


def remediation_hint(kind: PositionErrorKind, platform: HostPlatform) -> str:
    by_platform = _HINTS[kind]
    return f"{by_platform.get(platform, by_platform[HostPlatform.UNKNOWN])} {_QR_FALLBACK}"


def position_error(kind: PositionErrorKind, platform: HostPlatform, **context) -> PositionError:
    cls, message = _ERRORS[kind]
    return cls(message, hint=remediation_hint(kind, platform), platform=platform.value, **context)
