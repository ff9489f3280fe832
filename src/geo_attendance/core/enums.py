from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used by exemption rules and admin endpoints."""

    ADMIN = "admin"
    REGIONAL_MANAGER = "regional_manager"
    DEPARTMENT_HEAD = "department_head"
    STAFF = "staff"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored with each session."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    EARLY_LEAVE = "EARLY_LEAVE"
    COMPLETED = "COMPLETED"
    AUTO_CLOSED = "AUTO_CLOSED"
    REMOTE = "REMOTE"


class RequestStatus(str, Enum):
    """Approval workflow status for off-premises requests."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SessionState(str, Enum):
    NO_SESSION = "NO_SESSION"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    AWAITING_LATENESS_REASON = "AWAITING_LATENESS_REASON"
    AWAITING_EARLY_CHECKOUT_REASON = "AWAITING_EARLY_CHECKOUT_REASON"
    AWAITING_OFF_PREMISES_APPROVAL = "AWAITING_OFF_PREMISES_APPROVAL"


class ReasonKind(str, Enum):
    LATENESS = "LATENESS"
    EARLY_CHECKOUT = "EARLY_CHECKOUT"


class AttendanceAction(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class AccuracyTier(str, Enum):
    """Coarse quality class of a position sample (advisory only)."""

    GOOD = "GOOD"
    MODERATE = "MODERATE"
    POOR = "POOR"
    CRITICAL = "CRITICAL"


class PositionSource(str, Enum):
    HIGH_ACCURACY = "HIGH_ACCURACY"
    NETWORK = "NETWORK"
    AVERAGED = "AVERAGED"
    REPORTED = "REPORTED"


class PositionErrorKind(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMED_OUT = "TIMED_OUT"


class DeviceClass(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    LAPTOP = "laptop"
    DESKTOP = "desktop"


class ClientKind(str, Enum):
    """Browser family of the client, keys of the per-client tolerance table."""

    CHROME = "chrome"
    EDGE = "edge"
    FIREFOX = "firefox"
    SAFARI = "safari"
    OPERA = "opera"
    OTHER = "other"


class HostPlatform(str, Enum):
    WINDOWS = "windows"
    MACOS = "macos"
    ANDROID = "android"
    IOS = "ios"
    LINUX = "linux"
    UNKNOWN = "unknown"
