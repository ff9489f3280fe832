from geo_attendance.core.enums import AttendanceAction, ClientKind, DeviceClass
from geo_attendance.proximity.tolerance import DeviceRadius, ToleranceProfile, resolve_tolerance


def test_device_radius_wins_over_client_table_and_fallback():
    assert resolve_tolerance(400, {ClientKind.CHROME: 300}, 100, client=ClientKind.CHROME) == 400


def test_client_table_wins_over_fallback():
    assert resolve_tolerance(None, {ClientKind.OPERA: 1500}, 100, client=ClientKind.OPERA) == 1500


def test_client_table_uses_other_entry_for_unknown_clients():
    table = {ClientKind.CHROME: 300, ClientKind.OTHER: 500}
    assert resolve_tolerance(None, table, 100, client=ClientKind.FIREFOX) == 500


def test_global_fallback_when_nothing_configured():
    assert resolve_tolerance(None, None, 100) == 100
    assert resolve_tolerance(None, {}, 75) == 75


def test_profile_resolves_check_out_independently():
    profile = ToleranceProfile(device_radii={DeviceClass.DESKTOP: DeviceRadius(2000, 1000)})
    assert profile.resolve(DeviceClass.DESKTOP, AttendanceAction.CHECK_IN) == 2000
    assert profile.resolve(DeviceClass.DESKTOP, AttendanceAction.CHECK_OUT) == 1000


def test_profile_ignores_disabled_client_table():
    profile = ToleranceProfile(
        client_tolerances={ClientKind.CHROME: 300},
        client_tolerance_enabled=False,
        global_fallback_m=100,
    )
    assert profile.resolve(DeviceClass.MOBILE, AttendanceAction.CHECK_IN, ClientKind.CHROME) == 100


def test_profile_uses_enabled_client_table_when_device_missing():
    profile = ToleranceProfile(
        client_tolerances={ClientKind.CHROME: 300},
        client_tolerance_enabled=True,
        global_fallback_m=100,
    )
    assert profile.resolve(DeviceClass.MOBILE, AttendanceAction.CHECK_IN, ClientKind.CHROME) == 300
