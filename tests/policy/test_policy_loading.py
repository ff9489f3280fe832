from datetime import time
from types import SimpleNamespace

import pytest

from geo_attendance.config import testing as testing_settings
from geo_attendance.core.enums import AttendanceAction, ClientKind, DeviceClass, Role
from geo_attendance.core.exceptions import ValidationError
from geo_attendance.policy.context import PolicyContext
from geo_attendance.policy.loader import load_policy
from geo_attendance.policy.model import AttendancePolicy


def test_empty_settings_give_stock_policy():
    policy, tolerance = load_policy(SimpleNamespace())

    assert policy == AttendancePolicy()
    assert tolerance.resolve(DeviceClass.DESKTOP, AttendanceAction.CHECK_IN) == 2000
    assert tolerance.resolve(DeviceClass.DESKTOP, AttendanceAction.CHECK_OUT) == 1000
    assert tolerance.global_fallback_m == 100


def test_settings_module_is_loaded():
    policy, tolerance = load_policy(testing_settings)
    assert policy.lateness_cutoff == time(9, 0)
    assert policy.check_in_deadline == time(15, 0)
    assert policy.min_reason_length == 20
    assert tolerance.resolve(DeviceClass.LAPTOP, AttendanceAction.CHECK_IN) == 700


def test_overrides_are_parsed():
    settings = SimpleNamespace(
        LATENESS_CUTOFF="08:30",
        CHECK_IN_DEADLINE="",
        TIME_EXEMPT_ROLES=["admin"],
        CLIENT_TOLERANCES={"opera": 1500},
        CLIENT_TOLERANCE_ENABLED=True,
        DEVICE_RADII={},
        SAMPLED_CLIENTS=["opera", "firefox"],
    )
    policy, tolerance = load_policy(settings)

    assert policy.lateness_cutoff == time(8, 30)
    assert policy.check_in_deadline is None
    assert policy.time_exempt_roles == frozenset({Role.ADMIN})
    assert policy.sampled_clients == frozenset({ClientKind.OPERA, ClientKind.FIREFOX})
    assert tolerance.resolve(DeviceClass.MOBILE, AttendanceAction.CHECK_IN, ClientKind.OPERA) == 1500


def test_bad_time_setting_is_rejected():
    with pytest.raises(ValidationError):
        load_policy(SimpleNamespace(LATENESS_CUTOFF="nine"))


def test_policy_context_reloads_after_ttl():
    ticks = [0.0]
    calls = []

    def loader():
        calls.append(1)
        return load_policy(SimpleNamespace(MIN_DWELL_MINUTES=len(calls) * 60))

    ctx = PolicyContext(loader, ttl_seconds=30, monotonic=lambda: ticks[0])
    assert ctx.policy.min_dwell_minutes == 60
    ticks[0] = 10
    assert ctx.policy.min_dwell_minutes == 60
    ticks[0] = 31
    assert ctx.policy.min_dwell_minutes == 120
    ctx.refresh()
    assert ctx.policy.min_dwell_minutes == 180


def test_policy_context_first_read_returns_what_the_loader_gave():
    loaded = load_policy(SimpleNamespace())
    calls = []

    def loader():
        calls.append(1)
        return loaded

    ctx = PolicyContext(loader)
    assert ctx.refresh() is loaded
    assert ctx.policy is loaded[0]
    assert ctx.tolerance is loaded[1]
    assert len(calls) == 1
