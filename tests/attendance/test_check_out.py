from __future__ import annotations

import asyncio
from datetime import datetime, time

import pytest

from geo_attendance.attendance.model import AwaitingEarlyCheckoutReason, CheckedIn, CheckedOut, NoSession
from geo_attendance.core.enums import AttendanceStatus, DeviceClass, ReasonKind
from geo_attendance.core.exceptions import (
    InvalidStateTransition,
    OutOfRange,
    PersistenceError,
    TooSoon,
    WindowClosed,
)
from geo_attendance.policy.model import AttendancePolicy
from geo_attendance.positioning.acquirer import PositionAcquirer
from geo_attendance.positioning.model import RawFix

from fakes import ANNEX, HQ, FakeClock, FakeDevice, build_controller, north_of, sample_near


def _checked_in(clock, store=None, **kwargs):
    ctl = build_controller(clock=clock, store=store, **kwargs)
    asyncio.run(ctl.request_check_in(clock(), sample=sample_near(HQ)))
    assert isinstance(ctl.current_state(), CheckedIn)
    return ctl


def test_scenario_d_check_out_before_minimum_dwell(clock):
    ctl = _checked_in(clock)
    clock.advance(minutes=45)

    with pytest.raises(TooSoon) as exc:
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ)))
    assert exc.value.minutes_remaining == 75
    assert isinstance(ctl.current_state(), CheckedIn)
    assert ctl.minutes_until_check_out() == 75


def test_dwell_countdown_rounds_up_partial_minutes(clock):
    ctl = _checked_in(clock)
    clock.advance(minutes=119, seconds=1)
    assert ctl.minutes_until_check_out() == 1
    clock.advance(seconds=59)
    assert ctl.minutes_until_check_out() == 0


def test_no_countdown_without_open_session(clock):
    assert build_controller(clock=clock).minutes_until_check_out() is None


def test_check_out_without_session_is_invalid(clock):
    ctl = build_controller(clock=clock)
    with pytest.raises(InvalidStateTransition):
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ)))


def test_full_day_check_out_completes_session(clock, store):
    ctl = _checked_in(clock, store)
    clock.advance(hours=9)

    state = asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ, 300)))
    assert isinstance(state, CheckedOut)
    assert state.session.status == AttendanceStatus.COMPLETED
    assert state.session.check_out_time == datetime(2026, 2, 2, 17, 30)
    assert state.session.check_out_facility_id == "hq"
    assert state.session.check_out_method == "location"

    clock.advance(minutes=1)
    with pytest.raises(InvalidStateTransition):
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ)))


def test_early_check_out_without_reason_requirement(clock):
    ctl = _checked_in(clock)
    clock.advance(hours=5)

    state = asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ)))
    assert isinstance(state, CheckedOut)
    assert state.session.status == AttendanceStatus.EARLY_LEAVE


def test_early_check_out_at_reason_facility_waits_for_reason(clock, store):
    ctl = _checked_in(clock, store)
    clock.advance(hours=5)

    state = asyncio.run(ctl.request_check_out(clock(), sample=sample_near(ANNEX)))
    assert isinstance(state, AwaitingEarlyCheckoutReason)
    assert store.calls == ["check_in"]

    state = asyncio.run(ctl.submit_reason(ReasonKind.EARLY_CHECKOUT, "  doctor appointment this afternoon  ", clock()))
    assert isinstance(state, CheckedOut)
    assert state.session.status == AttendanceStatus.EARLY_LEAVE
    assert state.session.early_checkout_reason == "doctor appointment this afternoon"
    assert state.session.check_out_facility_id == "annex"


def test_cancel_early_check_out_reason_keeps_session_open(clock):
    ctl = _checked_in(clock)
    clock.advance(hours=5)
    asyncio.run(ctl.request_check_out(clock(), sample=sample_near(ANNEX)))

    state = ctl.cancel_pending_reason()
    assert isinstance(state, CheckedIn)
    assert state.session.check_out_time is None


def test_stale_reason_draft_is_rejected_after_midnight():
    clock = FakeClock(datetime(2026, 2, 2, 9, 30))
    ctl = build_controller(clock=clock)
    asyncio.run(ctl.request_check_in(clock(), sample=sample_near(HQ)))

    with pytest.raises(InvalidStateTransition):
        asyncio.run(ctl.submit_reason(ReasonKind.LATENESS, "x" * 25, datetime(2026, 2, 3, 0, 1)))


def test_check_out_out_of_range_never_offers_off_premises(clock):
    ctl = _checked_in(clock)
    clock.advance(hours=9)

    with pytest.raises(OutOfRange) as exc:
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ, -5000)))
    assert exc.value.off_premises_allowed is False
    assert isinstance(ctl.current_state(), CheckedIn)


def test_desktop_check_out_tolerance_is_tighter_than_check_in(clock):
    ctl = _checked_in(clock, device=FakeDevice(DeviceClass.DESKTOP))
    clock.advance(hours=9)

    with pytest.raises(OutOfRange) as exc:
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ, -1500)))
    assert exc.value.context["allowed_m"] == 1000


def test_check_out_deadline_when_configured(clock):
    ctl = _checked_in(clock, policy=AttendancePolicy(check_out_deadline=time(20, 0)))
    clock.advance(hours=12)
    with pytest.raises(WindowClosed):
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ)))


def test_failed_check_out_commit_can_be_retried(clock, store):
    ctl = _checked_in(clock, store)
    clock.advance(hours=9)
    store.fail_next = 1

    with pytest.raises(PersistenceError):
        asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ)))
    assert isinstance(ctl.current_state(), CheckedIn)

    state = asyncio.run(ctl.retry_commit())
    assert isinstance(state, CheckedOut)
    assert store.get_for_user_and_date(1, clock().date()).check_out_time == datetime(2026, 2, 2, 17, 30)


def test_cancel_from_no_session_is_invalid(clock):
    ctl = build_controller(clock=clock)
    with pytest.raises(InvalidStateTransition):
        ctl.cancel_pending_reason()
    assert isinstance(ctl.current_state(), NoSession)


class GatedProvider:
    """Holds every reading until ``release`` is set."""

    def __init__(self, fix: RawFix):
        self.fix = fix
        self.release = asyncio.Event()
        self.waiting = asyncio.Event()

    async def current_position(self, options):
        self.waiting.set()
        await self.release.wait()
        return self.fix


def test_device_of_a_concurrent_call_does_not_leak_into_check_out(clock):
    ctl = _checked_in(clock, device=FakeDevice(DeviceClass.DESKTOP, "desk-1"))
    clock.advance(hours=9)
    lat, lon = north_of(HQ, -900)

    async def scenario():
        provider = GatedProvider(RawFix(lat, lon, 15.0))
        phone = asyncio.create_task(
            ctl.request_check_out(
                clock(),
                device=FakeDevice(DeviceClass.MOBILE, "phone-1"),
                acquirer=PositionAcquirer(provider),
            )
        )
        await provider.waiting.wait()
        with pytest.raises(InvalidStateTransition):
            await ctl.request_check_in(clock(), device=FakeDevice(DeviceClass.DESKTOP, "desk-1"))
        provider.release.set()
        return await asyncio.gather(phone, return_exceptions=True)

    (result,) = asyncio.run(scenario())
    assert isinstance(result, OutOfRange)
    assert result.context["allowed_m"] == 400
    assert isinstance(ctl.current_state(), CheckedIn)


def test_constructor_device_is_the_default_for_check_out(clock):
    ctl = _checked_in(clock, device=FakeDevice(DeviceClass.DESKTOP))
    clock.advance(hours=9)

    state = asyncio.run(ctl.request_check_out(clock(), sample=sample_near(HQ, -900)))
    assert isinstance(state, CheckedOut)
