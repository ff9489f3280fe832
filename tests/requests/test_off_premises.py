from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from geo_attendance.attendance.model import AwaitingOffPremisesApproval, CheckedIn, CheckedOut, NoSession
from geo_attendance.core.enums import AttendanceStatus, RequestStatus, Role
from geo_attendance.core.exceptions import (
    AuthorizationError,
    InvalidStateTransition,
    OutOfRange,
    PersistenceError,
    PolicyError,
    ReasonTooShort,
    ValidationError,
)
from geo_attendance.policy.model import AttendancePolicy
from geo_attendance.requests.events import ApprovalEvents
from geo_attendance.requests.model import ApprovalDecision
from geo_attendance.requests.service import OffPremisesService

from fakes import HQ, build_controller, sample_near

REASON = "Client visit at the harbour site all morning"


def _awaiting_approval(clock, approvals, events, store=None):
    ctl = build_controller(clock=clock, approvals=approvals, events=events, store=store)
    with pytest.raises(OutOfRange) as exc:
        asyncio.run(ctl.request_check_in(clock(), sample=sample_near(HQ, -5000)))
    assert exc.value.off_premises_allowed

    clock.advance(minutes=1)
    state = asyncio.run(ctl.request_off_premises_exception(REASON, now=clock()))
    assert isinstance(state, AwaitingOffPremisesApproval)
    return ctl


def test_request_is_stored_with_offered_location(clock, approvals):
    events = ApprovalEvents()
    ctl = _awaiting_approval(clock, approvals, events)

    state = ctl.current_state()
    req = approvals.get_request(state.request_id)
    assert req.status == RequestStatus.PENDING
    assert req.reason == REASON
    assert req.latitude == pytest.approx(sample_near(HQ, -5000).latitude)
    assert ctl.off_premises_offer is None


def test_request_without_prior_out_of_range_is_invalid(clock, approvals):
    ctl = build_controller(clock=clock, approvals=approvals)
    with pytest.raises(InvalidStateTransition):
        asyncio.run(ctl.request_off_premises_exception(REASON, now=clock()))


def test_request_reason_must_be_long_enough(clock, approvals):
    ctl = build_controller(clock=clock, approvals=approvals)
    with pytest.raises(OutOfRange):
        asyncio.run(ctl.request_check_in(clock(), sample=sample_near(HQ, -5000)))

    with pytest.raises(ReasonTooShort):
        asyncio.run(ctl.request_off_premises_exception("visiting client", now=clock()))
    assert isinstance(ctl.current_state(), NoSession)
    assert ctl.off_premises_offer is not None


def test_disabled_off_premises_never_offers(clock, approvals):
    ctl = build_controller(clock=clock, approvals=approvals, policy=AttendancePolicy(off_premises_enabled=False))
    with pytest.raises(OutOfRange) as exc:
        asyncio.run(ctl.request_check_in(clock(), sample=sample_near(HQ, -5000)))
    assert exc.value.off_premises_allowed is False

    with pytest.raises(PolicyError):
        asyncio.run(ctl.request_off_premises_exception(REASON, now=clock()))


def test_approval_opens_a_remote_session(clock, approvals, store):
    events = ApprovalEvents()
    ctl = _awaiting_approval(clock, approvals, events, store)
    request_id = ctl.current_state().request_id
    service = OffPremisesService(approvals, events)

    decision = asyncio.run(
        service.approve(current_role=Role.ADMIN, admin_user_id=99, request_id=request_id, now=clock())
    )
    assert decision.approved

    state = ctl.current_state()
    assert isinstance(state, CheckedIn)
    assert state.session.status == AttendanceStatus.REMOTE
    assert state.session.check_in_remote is True
    assert state.session.check_in_time == datetime(2026, 2, 2, 8, 31)
    assert approvals.get_request(request_id).status == RequestStatus.APPROVED


def test_remote_session_checks_out_without_proximity(clock, approvals, store):
    events = ApprovalEvents()
    ctl = _awaiting_approval(clock, approvals, events, store)
    asyncio.run(
        OffPremisesService(approvals, events).approve(
            current_role=Role.ADMIN, admin_user_id=99, request_id=ctl.current_state().request_id, now=clock()
        )
    )

    clock.advance(hours=9)
    state = asyncio.run(ctl.request_check_out(clock()))
    assert isinstance(state, CheckedOut)
    assert state.session.check_out_method == "remote"
    assert state.session.status == AttendanceStatus.REMOTE


def test_rejection_returns_to_no_session(clock, approvals):
    events = ApprovalEvents()
    ctl = _awaiting_approval(clock, approvals, events)
    request_id = ctl.current_state().request_id

    asyncio.run(
        OffPremisesService(approvals, events).reject(
            current_role=Role.ADMIN, admin_user_id=99, request_id=request_id, admin_note=" not on the rota ", now=clock()
        )
    )
    assert isinstance(ctl.current_state(), NoSession)
    assert approvals.get_request(request_id).admin_note == "not on the rota"


def test_decision_for_another_request_is_ignored(clock, approvals):
    ctl = _awaiting_approval(clock, approvals, ApprovalEvents())
    state = ctl.current_state()
    stray = ApprovalDecision(
        request_id=state.request_id + 100,
        user_id=1,
        status=RequestStatus.APPROVED,
        decided_by=99,
        decided_at=clock(),
    )
    assert asyncio.run(ctl.handle_approval_decision(stray)) is state


def test_cancel_while_awaiting_approval(clock, approvals):
    ctl = _awaiting_approval(clock, approvals, ApprovalEvents())
    assert isinstance(ctl.cancel_pending_reason(), NoSession)


def test_approved_remote_commit_failure_is_kept_for_retry(clock, approvals, store):
    events = ApprovalEvents()
    ctl = _awaiting_approval(clock, approvals, events, store)
    store.fail_next = 1

    asyncio.run(
        OffPremisesService(approvals, events).approve(
            current_role=Role.ADMIN, admin_user_id=99, request_id=ctl.current_state().request_id, now=clock()
        )
    )
    assert isinstance(ctl.current_state(), AwaitingOffPremisesApproval)
    assert ctl.pending_commit is not None

    assert isinstance(asyncio.run(ctl.retry_commit()), CheckedIn)


def test_only_admins_decide(approvals):
    service = OffPremisesService(approvals, ApprovalEvents())
    approvals.submit_request(1, REASON, None)

    with pytest.raises(AuthorizationError):
        asyncio.run(service.approve(current_role=Role.STAFF, admin_user_id=2, request_id=1))
    with pytest.raises(AuthorizationError):
        service.list_pending(current_role=Role.DEPARTMENT_HEAD)
    assert len(service.list_pending(current_role=Role.ADMIN)) == 1


def test_missing_or_decided_requests_are_rejected(approvals):
    service = OffPremisesService(approvals, ApprovalEvents())
    with pytest.raises(ValidationError):
        asyncio.run(service.approve(current_role=Role.ADMIN, admin_user_id=2, request_id=42))

    rid = approvals.submit_request(1, REASON, None)
    asyncio.run(service.reject(current_role=Role.ADMIN, admin_user_id=2, request_id=rid))
    with pytest.raises(ValidationError):
        asyncio.run(service.approve(current_role=Role.ADMIN, admin_user_id=2, request_id=rid))


def test_events_deliver_to_the_decided_user_only():
    events = ApprovalEvents()
    seen = []

    async def async_handler(decision):
        seen.append(("async", decision.user_id))

    unsubscribe = events.subscribe(1, lambda d: seen.append(("sync", d.user_id)))
    events.subscribe(1, async_handler)
    events.subscribe(2, lambda d: seen.append(("other", d.user_id)))

    decision = ApprovalDecision(request_id=1, user_id=1, status=RequestStatus.REJECTED, decided_by=9, decided_at=datetime(2026, 2, 2))
    assert asyncio.run(events.publish(decision)) == 2
    assert seen == [("sync", 1), ("async", 1)]

    unsubscribe()
    unsubscribe()
    assert events.subscriber_count(1) == 1


def test_closed_controller_stops_listening(clock, approvals):
    events = ApprovalEvents()
    ctl = build_controller(clock=clock, approvals=approvals, events=events)
    assert events.subscriber_count(1) == 1
    ctl.close()
    assert events.subscriber_count(1) == 0


def test_approval_without_live_controller_opens_remote_session(clock, approvals, store):
    events = ApprovalEvents()
    rid = approvals.submit_request(1, REASON, sample_near(HQ, -5000))
    service = OffPremisesService(approvals, events, store)

    asyncio.run(service.approve(current_role=Role.ADMIN, admin_user_id=99, request_id=rid, now=clock()))

    saved = store.get_for_user_and_date(1, datetime(2026, 2, 2).date())
    assert saved.status == AttendanceStatus.REMOTE
    assert saved.check_in_remote is True
    assert saved.check_in_time == datetime(2026, 2, 2, 8, 0)
    assert approvals.get_request(rid).status == RequestStatus.APPROVED

    ctl = build_controller(clock=clock, store=store, approvals=approvals, events=events)
    state = asyncio.run(ctl.restore(clock()))
    assert isinstance(state, CheckedIn)
    assert state.session.check_in_remote is True


def test_rejection_without_live_controller_opens_nothing(clock, approvals, store):
    rid = approvals.submit_request(1, REASON, None)
    service = OffPremisesService(approvals, ApprovalEvents(), store)

    asyncio.run(service.reject(current_role=Role.ADMIN, admin_user_id=99, request_id=rid, now=clock()))
    assert store.get_for_user_and_date(1, datetime(2026, 2, 2).date()) is None


def test_unsaved_remote_session_leaves_request_pending(clock, approvals, store):
    rid = approvals.submit_request(1, REASON, None)
    service = OffPremisesService(approvals, ApprovalEvents(), store)
    store.fail_next = 1

    with pytest.raises(PersistenceError):
        asyncio.run(service.approve(current_role=Role.ADMIN, admin_user_id=99, request_id=rid, now=clock()))
    assert approvals.get_request(rid).status == RequestStatus.PENDING

    asyncio.run(service.approve(current_role=Role.ADMIN, admin_user_id=99, request_id=rid, now=clock()))
    assert store.get_for_user_and_date(1, datetime(2026, 2, 2).date()).status == AttendanceStatus.REMOTE


def test_approval_keeps_an_existing_record_of_the_day(clock, approvals, store):
    ctl = build_controller(clock=clock, store=store)
    asyncio.run(ctl.request_check_in(clock(), sample=sample_near(HQ)))
    ctl.close()
    rid = approvals.submit_request(1, REASON, None)
    service = OffPremisesService(approvals, ApprovalEvents(), store)

    asyncio.run(service.approve(current_role=Role.ADMIN, admin_user_id=99, request_id=rid, now=clock()))

    saved = store.get_for_user_and_date(1, datetime(2026, 2, 2).date())
    assert saved.check_in_remote is False
    assert saved.check_in_facility_id == HQ.id
