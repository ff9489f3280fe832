from __future__ import annotations

from datetime import time
from types import ModuleType
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from ..common.datetime_utils import parse_hhmm
from ..core import constants as c
from ..core.enums import ClientKind, DeviceClass, Role
from ..core.exceptions import ValidationError
from ..proximity.tolerance import DeviceRadius, ToleranceProfile
from .model import AttendancePolicy

TimeSetting = Union[str, time, None]


def _time(value: TimeSetting, default: Optional[time]) -> Optional[time]:
    if value is None:
        return default
    if isinstance(value, time):
        return value
    if not str(value).strip():
        return None
    try:
        return parse_hhmm(str(value))
    except ValueError as exc:
        raise ValidationError(f"Invalid time setting: {value!r}") from exc


def _device_radii(raw: Mapping[str, Any]) -> dict:
    radii = {}
    for key, pair in raw.items():
        check_in, check_out = pair
        radii[DeviceClass(key)] = DeviceRadius(float(check_in), float(check_out))
    return radii


def _client_tolerances(raw: Mapping[str, Any]) -> dict:
    return {ClientKind(key): float(value) for key, value in raw.items()}


def _lower_set(values: Iterable[str]) -> frozenset:
    return frozenset(v.strip().lower() for v in values if v and v.strip())


def load_policy(settings: Union[ModuleType, Any]) -> Tuple[AttendancePolicy, ToleranceProfile]:
    """Build the policy tables from a settings module.

    Missing settings fall back to the built-in defaults, so an empty module
    yields the stock policy.
    """

    def get(name: str, default: Any = None) -> Any:
        return getattr(settings, name, default)

    defaults = AttendancePolicy()

    policy = AttendancePolicy(
        lateness_cutoff=_time(get("LATENESS_CUTOFF"), defaults.lateness_cutoff),
        late_grace_minutes=int(get("LATE_GRACE_MINUTES", defaults.late_grace_minutes)),
        check_in_deadline=_time(get("CHECK_IN_DEADLINE"), defaults.check_in_deadline),
        check_out_deadline=_time(get("CHECK_OUT_DEADLINE"), defaults.check_out_deadline),
        standard_end_time=_time(get("STANDARD_END_TIME"), defaults.standard_end_time),
        min_dwell_minutes=int(get("MIN_DWELL_MINUTES", defaults.min_dwell_minutes)),
        min_reason_length=int(get("MIN_REASON_LENGTH", defaults.min_reason_length)),
        max_reason_length=int(get("MAX_REASON_LENGTH", defaults.max_reason_length)),
        debounce_seconds=int(get("DEBOUNCE_SECONDS", defaults.debounce_seconds)),
        time_exempt_departments=_lower_set(get("TIME_EXEMPT_DEPARTMENTS", defaults.time_exempt_departments)),
        time_exempt_roles=frozenset(Role(r) for r in get("TIME_EXEMPT_ROLES", defaults.time_exempt_roles)),
        lateness_exempt_departments=_lower_set(
            get("LATENESS_EXEMPT_DEPARTMENTS", defaults.lateness_exempt_departments)
        ),
        reason_exempt_roles=frozenset(Role(r) for r in get("REASON_EXEMPT_ROLES", defaults.reason_exempt_roles)),
        weekend_reason_exempt=bool(get("WEEKEND_REASON_EXEMPT", defaults.weekend_reason_exempt)),
        off_premises_enabled=bool(get("OFF_PREMISES_ENABLED", defaults.off_premises_enabled)),
        facility_code_radius_m=float(get("FACILITY_CODE_RADIUS_M", defaults.facility_code_radius_m)),
        sampled_clients=frozenset(ClientKind(k) for k in get("SAMPLED_CLIENTS", defaults.sampled_clients)),
        sample_count=int(get("SAMPLE_COUNT", defaults.sample_count)),
    )

    tolerance = ToleranceProfile(
        device_radii=_device_radii(get("DEVICE_RADII", c.DEFAULT_DEVICE_RADII)),
        client_tolerances=_client_tolerances(get("CLIENT_TOLERANCES", {})),
        client_tolerance_enabled=bool(get("CLIENT_TOLERANCE_ENABLED", False)),
        global_fallback_m=float(get("GLOBAL_TOLERANCE_M", c.DEFAULT_GLOBAL_TOLERANCE_M)),
    )
    return policy, tolerance
