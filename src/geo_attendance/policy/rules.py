"""Exemption and time-window rules.

- Weekend days never require a lateness or early check-out reason.
- Security and research departments are exempt from lateness reasons.
- Department heads and regional managers are exempt from all reasons.
- Operations/security departments and admin/manager roles may check in at
  any time; everybody else is bound by the facility window and the daily
  check-in deadline.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from ..common.datetime_utils import is_weekend
from ..core.exceptions import WindowClosed
from ..facilities.model import Facility
from ..users.model import Department, UserProfile
from .model import AttendancePolicy


def department_matches(dept: Optional[Department], keys: Iterable[str]) -> bool:
    if dept is None:
        return False
    code = (dept.code or "").lower()
    name = (dept.name or "").lower()
    return any(code == k or k in name for k in keys)


def is_exempt_from_time_restrictions(profile: Optional[UserProfile], policy: AttendancePolicy) -> bool:
    if profile is None:
        return False
    if department_matches(profile.department, policy.time_exempt_departments):
        return True
    return profile.role in policy.time_exempt_roles


def is_exempt_from_reasons(profile: Optional[UserProfile], policy: AttendancePolicy) -> bool:
    return profile is not None and profile.role in policy.reason_exempt_roles


def requires_lateness_reason(day: date, profile: Optional[UserProfile], policy: AttendancePolicy) -> bool:
    if policy.weekend_reason_exempt and is_weekend(day):
        return False
    if profile is not None and department_matches(profile.department, policy.lateness_exempt_departments):
        return False
    return not is_exempt_from_reasons(profile, policy)


def requires_early_checkout_reason(
    day: date,
    facility: Facility,
    profile: Optional[UserProfile],
    policy: AttendancePolicy,
) -> bool:
    if not facility.requires_early_checkout_reason:
        return False
    if policy.weekend_reason_exempt and is_weekend(day):
        return False
    return not is_exempt_from_reasons(profile, policy)


def ensure_check_in_window(
    now: datetime,
    facility: Facility,
    profile: Optional[UserProfile],
    policy: AttendancePolicy,
) -> None:
    if is_exempt_from_time_restrictions(profile, policy):
        return

    current = now.time()
    start, end = facility.check_in_window_start, facility.check_in_window_end
    if start is not None and current < start:
        raise WindowClosed(
            f"Check-in at {facility.name} opens at {start.strftime('%H:%M')}",
            facility=facility.name,
            opens_at=start.strftime("%H:%M"),
        )
    if end is not None and current > end:
        raise WindowClosed(
            f"Check-in at {facility.name} closed at {end.strftime('%H:%M')}",
            facility=facility.name,
            closed_at=end.strftime("%H:%M"),
        )
    if policy.check_in_deadline is not None and current >= policy.check_in_deadline:
        raise WindowClosed(
            f"Check-in is only allowed before {policy.check_in_deadline.strftime('%H:%M')}",
            facility=facility.name,
            closed_at=policy.check_in_deadline.strftime("%H:%M"),
        )


def ensure_check_out_window(now: datetime, profile: Optional[UserProfile], policy: AttendancePolicy) -> None:
    if policy.check_out_deadline is None or is_exempt_from_time_restrictions(profile, policy):
        return
    if now.time() >= policy.check_out_deadline:
        raise WindowClosed(
            f"Check-out is only allowed before {policy.check_out_deadline.strftime('%H:%M')}",
            closed_at=policy.check_out_deadline.strftime("%H:%M"),
        )
