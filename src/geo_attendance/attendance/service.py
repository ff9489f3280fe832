from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import ceil_minutes, now_local
from ..common.validators import require_reason
from ..core.constants import (
    AUTO_CHECKOUT_METHOD,
    AUTO_CLOSE_TIME,
    LOCATION_CHECKOUT_METHOD,
    REMOTE_CHECKOUT_METHOD,
)
from ..core.enums import (
    AttendanceAction,
    AttendanceStatus,
    ClientKind,
    HostPlatform,
    PositionErrorKind,
    ReasonKind,
)
from ..core.exceptions import (
    DuplicateRequest,
    InvalidStateTransition,
    OutOfRange,
    PersistenceError,
    PolicyError,
    TooSoon,
    ValidationError,
)
from ..devices.identity import DeviceIdentity
from ..facilities.code import parse_facility_code
from ..facilities.model import Facility
from ..facilities.repository import FacilityDirectory
from ..policy.context import PolicyContext
from ..policy.model import AttendancePolicy
from ..policy.rules import (
    ensure_check_in_window,
    ensure_check_out_window,
    requires_early_checkout_reason,
    requires_lateness_reason,
)
from ..positioning.acquirer import PositionAcquirer
from ..positioning.hints import position_error
from ..positioning.model import PositionSample, Sampled, Single
from ..proximity.engine import validate_check_in, validate_check_out, validate_facility_code
from ..proximity.model import ProximityVerdict
from ..requests.events import ApprovalEvents
from ..requests.model import ApprovalDecision
from ..requests.repository import ApprovalStore
from ..users.model import UserProfile
from ..users.repository import UserDirectory
from .factory import AttendanceStrategyFactory
from .model import (
    AttendanceSession,
    AwaitingEarlyCheckoutReason,
    AwaitingLatenessReason,
    AwaitingOffPremisesApproval,
    CheckedIn,
    CheckedOut,
    ControllerState,
    NoSession,
    OffPremisesOffer,
    PendingCommit,
    state_to_dict,
)
from .repository import AttendanceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Caller:
    """The device side of one check-in or check-out call."""

    device: Optional[DeviceIdentity]
    client: ClientKind
    platform: HostPlatform
    acquirer: Optional[PositionAcquirer]

    @property
    def device_id(self) -> Optional[str]:
        return self.device.device_id if self.device is not None else None


class AttendanceSessionController:
    """State machine for one user's attendance day.

    One instance per user. Every operation either returns the new state or
    raises a ``DomainError``; guard failures are never retried here.

    Suspension points are position acquisition and the store calls. While an
    operation of a kind (check-in, check-out) is suspended, a second call of
    the same kind fails with ``DuplicateRequest``.

    The device, client, platform and acquirer given to the constructor are
    defaults; a check-in or check-out may name its own, which then apply to
    that call only.
    """

    def __init__(
        self,
        user_id: int,
        *,
        facilities: FacilityDirectory,
        store: AttendanceStore,
        policy: PolicyContext,
        device: Optional[DeviceIdentity] = None,
        acquirer: Optional[PositionAcquirer] = None,
        approvals: Optional[ApprovalStore] = None,
        events: Optional[ApprovalEvents] = None,
        users: Optional[UserDirectory] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        client: ClientKind = ClientKind.OTHER,
        platform: HostPlatform = HostPlatform.UNKNOWN,
        clock: Callable[[], datetime] = now_local,
    ):
        self._user_id = int(user_id)
        self._facilities = facilities
        self._store = store
        self._policy = policy
        self._device = device
        self._acquirer = acquirer
        self._approvals = approvals
        self._users = users
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._client = client
        self._platform = platform
        self._clock = clock

        self._state: ControllerState = NoSession()
        self._verdict: Optional[ProximityVerdict] = None
        self._retained: Optional[PendingCommit] = None
        self._offer: Optional[OffPremisesOffer] = None
        self._in_flight: set = set()
        self._last_attempt: dict = {}
        self._restored = False

        self._unsubscribe: Optional[Callable[[], None]] = None
        if events is not None:
            self._unsubscribe = events.subscribe(self._user_id, self.handle_approval_decision)

    # Read-only views

    @property
    def user_id(self) -> int:
        return self._user_id

    def current_state(self) -> ControllerState:
        return self._state

    def current_proximity_verdict(self) -> Optional[ProximityVerdict]:
        return self._verdict

    @property
    def restored(self) -> bool:
        return self._restored

    @property
    def pending_commit(self) -> Optional[PendingCommit]:
        return self._retained

    @property
    def off_premises_offer(self) -> Optional[OffPremisesOffer]:
        return self._offer

    def is_in_flight(self, action: AttendanceAction) -> bool:
        return action in self._in_flight

    def minutes_until_check_out(self, now: Optional[datetime] = None) -> Optional[int]:
        """Remaining minimum dwell for an open session, ``None`` when not checked in."""
        if not isinstance(self._state, CheckedIn) or self._state.session.check_in_time is None:
            return None
        now = now or self._clock()
        required = timedelta(minutes=self._policy.policy.min_dwell_minutes)
        return ceil_minutes(required - (now - self._state.session.check_in_time))

    def snapshot(self) -> dict:
        data = state_to_dict(self._state)
        data["proximity"] = self._verdict.to_dict() if self._verdict else None
        data["pending_commit"] = self._retained is not None
        data["off_premises_available"] = self._offer is not None
        return data

    # Guards

    def _reject_in_flight(self, action: AttendanceAction) -> None:
        if action in self._in_flight:
            logger.info("User %s: duplicate %s rejected", self._user_id, action.value)
            raise DuplicateRequest(
                f"A {action.value.lower().replace('_', '-')} is already in progress",
                action=action.value,
            )

    def _enter(self, action: AttendanceAction, now: datetime, *, debounce: bool = True) -> None:
        self._reject_in_flight(action)
        if debounce:
            last = self._last_attempt.get(action)
            window = timedelta(seconds=self._policy.policy.debounce_seconds)
            if last is not None and timedelta(0) <= now - last < window:
                raise DuplicateRequest(
                    "Please wait a few seconds before trying again",
                    action=action.value,
                    retry_after_s=round((window - (now - last)).total_seconds(), 1),
                )
            self._last_attempt[action] = now
        self._in_flight.add(action)

    def _leave(self, action: AttendanceAction) -> None:
        self._in_flight.discard(action)

    def _invalid(self, operation: str) -> InvalidStateTransition:
        logger.info("User %s: %s rejected in state %s", self._user_id, operation, self._state.kind.value)
        return InvalidStateTransition(
            f"Cannot {operation} while {self._state.kind.value.lower().replace('_', ' ')}",
            state=self._state.kind.value,
            operation=operation,
        )

    # Collaborators

    def _profile(self) -> Optional[UserProfile]:
        return self._users.get_profile(self._user_id) if self._users is not None else None

    def _caller(
        self,
        device: Optional[DeviceIdentity],
        client: Optional[ClientKind],
        platform: Optional[HostPlatform],
        acquirer: Optional[PositionAcquirer],
    ) -> _Caller:
        return _Caller(
            device=device if device is not None else self._device,
            client=client if client is not None else self._client,
            platform=platform if platform is not None else self._platform,
            acquirer=acquirer if acquirer is not None else self._acquirer,
        )

    def _tolerance(self, action: AttendanceAction, caller: _Caller) -> float:
        tolerance = self._policy.tolerance
        if caller.device is None:
            return tolerance.global_fallback_m
        return tolerance.resolve(caller.device.current_device_class(), action, caller.client)

    async def _acquire(self, policy: AttendancePolicy, caller: _Caller) -> PositionSample:
        if caller.acquirer is None:
            raise position_error(
                PositionErrorKind.POSITION_UNAVAILABLE,
                caller.platform,
                detail="no positioning provider is attached",
            )
        mode = Sampled(policy.sample_count) if caller.client in policy.sampled_clients else Single()
        return await caller.acquirer.acquire(mode)

    @staticmethod
    def _find_facility(facilities: Sequence[Facility], facility_id: str) -> Facility:
        for facility in facilities:
            if str(facility.id) == str(facility_id):
                return facility
        raise ValidationError("The scanned code does not belong to an active facility", location_id=facility_id)

    def _out_of_range(self, verdict: ProximityVerdict, *, offer: bool) -> OutOfRange:
        nearest = verdict.nearest
        context: dict = {
            "action": verdict.action.value,
            "accuracy_tier": verdict.accuracy_tier.value,
            "off_premises_allowed": offer,
        }
        if verdict.advisory:
            context["advisory"] = verdict.advisory
        if nearest is None:
            return OutOfRange("No active facility is configured", **context)
        context.update(
            facility=nearest.facility.name,
            facility_id=nearest.facility.id,
            distance_m=round(nearest.distance_m),
            allowed_m=round(nearest.effective_radius_m),
        )
        return OutOfRange(
            f"You are {round(nearest.distance_m)}m from {nearest.facility.name}; "
            f"the allowed distance is {round(nearest.effective_radius_m)}m",
            **context,
        )

    async def _commit(self, pending: PendingCommit) -> ControllerState:
        """Persist a validated decision; on failure keep the state and the decision."""
        if pending.action == AttendanceAction.CHECK_IN:
            call = self._store.commit_check_in
        else:
            call = self._store.commit_check_out
        try:
            saved = await asyncio.to_thread(call, pending.session)
        except PersistenceError:
            self._retained = pending
            logger.warning(
                "User %s: %s commit failed; decision kept for retry",
                self._user_id,
                pending.action.value,
            )
            raise

        self._retained = None
        self._offer = None
        if pending.ends_day:
            self._state = NoSession()
        elif pending.action == AttendanceAction.CHECK_IN:
            self._state = CheckedIn(saved)
        else:
            self._state = CheckedOut(saved)
        logger.info(
            "User %s: %s committed (facility=%s, status=%s)",
            self._user_id,
            pending.action.value,
            saved.check_out_facility_id if pending.action == AttendanceAction.CHECK_OUT else saved.check_in_facility_id,
            saved.status.value,
        )
        return self._state

    # Transitions

    async def request_check_in(
        self,
        now: Optional[datetime] = None,
        sample: Optional[PositionSample] = None,
        facility_code: Optional[str] = None,
        *,
        device: Optional[DeviceIdentity] = None,
        client: Optional[ClientKind] = None,
        platform: Optional[HostPlatform] = None,
        acquirer: Optional[PositionAcquirer] = None,
    ) -> ControllerState:
        now = now or self._clock()
        caller = self._caller(device, client, platform, acquirer)
        action = AttendanceAction.CHECK_IN
        self._reject_in_flight(action)
        if not isinstance(self._state, NoSession):
            raise self._invalid("check in")
        self._enter(action, now)
        try:
            policy = self._policy.policy
            if sample is None:
                sample = await self._acquire(policy, caller)

            facilities = self._facilities.list_active_facilities()
            if facility_code is not None:
                code = parse_facility_code(facility_code)
                verdict = validate_facility_code(
                    sample,
                    self._find_facility(facilities, code.location_id),
                    policy.facility_code_radius_m,
                    action=action,
                    platform=caller.platform,
                )
            else:
                verdict = validate_check_in(
                    sample,
                    facilities,
                    self._tolerance(action, caller),
                    platform=caller.platform,
                )
            self._verdict = verdict

            if not verdict.eligible:
                if policy.off_premises_enabled:
                    self._offer = OffPremisesOffer(
                        offered_at=now,
                        sample=sample,
                        nearest_facility=verdict.nearest.facility.name if verdict.nearest else None,
                        distance_m=verdict.nearest.distance_m if verdict.nearest else None,
                    )
                logger.info("User %s: check-in out of range", self._user_id)
                raise self._out_of_range(verdict, offer=policy.off_premises_enabled)

            facility = verdict.winning.facility
            profile = self._profile()
            ensure_check_in_window(now, facility, profile, policy)

            decision = self._factory.for_checkin(now=now, facility=facility, policy=policy).decide_checkin(
                now=now, facility=facility, policy=policy
            )
            draft = AttendanceSession(
                user_id=self._user_id,
                work_date=now.date(),
                check_in_time=now,
                check_in_facility_id=facility.id,
                status=decision.status,
                device_id=caller.device_id,
            )
            if decision.status == AttendanceStatus.LATE and requires_lateness_reason(now.date(), profile, policy):
                self._state = AwaitingLatenessReason(draft)
                logger.info("User %s: late check-in at %s, waiting for a reason", self._user_id, facility.id)
                return self._state

            return await self._commit(PendingCommit(action, draft))
        finally:
            self._leave(action)

    async def request_check_out(
        self,
        now: Optional[datetime] = None,
        sample: Optional[PositionSample] = None,
        *,
        device: Optional[DeviceIdentity] = None,
        client: Optional[ClientKind] = None,
        platform: Optional[HostPlatform] = None,
        acquirer: Optional[PositionAcquirer] = None,
    ) -> ControllerState:
        now = now or self._clock()
        caller = self._caller(device, client, platform, acquirer)
        action = AttendanceAction.CHECK_OUT
        self._reject_in_flight(action)
        if not isinstance(self._state, CheckedIn):
            raise self._invalid("check out")
        session = self._state.session
        self._enter(action, now)
        try:
            policy = self._policy.policy
            remaining = self.minutes_until_check_out(now)
            if remaining:
                raise TooSoon(
                    f"Check-out is available in {remaining} minutes",
                    minutes_remaining=remaining,
                    min_dwell_minutes=policy.min_dwell_minutes,
                )
            profile = self._profile()
            ensure_check_out_window(now, profile, policy)

            facility: Optional[Facility] = None
            method = REMOTE_CHECKOUT_METHOD
            if not session.check_in_remote:
                if sample is None:
                    sample = await self._acquire(policy, caller)
                verdict = validate_check_out(
                    sample,
                    self._facilities.list_active_facilities(),
                    self._tolerance(action, caller),
                    platform=caller.platform,
                )
                self._verdict = verdict
                if not verdict.eligible:
                    logger.info("User %s: check-out out of range", self._user_id)
                    raise self._out_of_range(verdict, offer=False)
                facility = verdict.winning.facility
                method = LOCATION_CHECKOUT_METHOD

            decision = self._factory.for_checkout(now=now, facility=facility, policy=policy).decide_checkout(
                now=now, facility=facility, policy=policy, current=session.status
            )
            draft = session.closed(
                at=now,
                status=decision.status,
                facility_id=facility.id if facility else None,
                method=method,
            )
            early = self._factory.is_early(now=now, facility=facility, policy=policy)
            if facility is not None and early and requires_early_checkout_reason(now.date(), facility, profile, policy):
                self._state = AwaitingEarlyCheckoutReason(session=session, draft=draft)
                logger.info("User %s: early check-out at %s, waiting for a reason", self._user_id, facility.id)
                return self._state

            return await self._commit(PendingCommit(action, draft))
        finally:
            self._leave(action)

    async def submit_reason(self, kind: ReasonKind, text: str, now: Optional[datetime] = None) -> ControllerState:
        now = now or self._clock()
        state = self._state
        if kind == ReasonKind.LATENESS and isinstance(state, AwaitingLatenessReason):
            action = AttendanceAction.CHECK_IN
        elif kind == ReasonKind.EARLY_CHECKOUT and isinstance(state, AwaitingEarlyCheckoutReason):
            action = AttendanceAction.CHECK_OUT
        else:
            raise self._invalid(f"submit a {kind.value.lower().replace('_', '-')} reason")

        if state.draft.work_date != now.date():
            raise InvalidStateTransition(
                "The pending request belongs to a previous day",
                state=state.kind.value,
                work_date=state.draft.work_date.isoformat(),
            )

        policy = self._policy.policy
        reason = require_reason(
            text,
            "Reason",
            min_len=policy.min_reason_length,
            max_len=policy.max_reason_length,
        )

        self._enter(action, now, debounce=False)
        try:
            if action == AttendanceAction.CHECK_IN:
                draft = replace(state.draft, lateness_reason=reason)
            else:
                draft = replace(state.draft, early_checkout_reason=reason)
            return await self._commit(PendingCommit(action, draft))
        finally:
            self._leave(action)

    def cancel_pending_reason(self) -> ControllerState:
        state = self._state
        if isinstance(state, (AwaitingLatenessReason, AwaitingOffPremisesApproval)):
            self._state = NoSession()
        elif isinstance(state, AwaitingEarlyCheckoutReason):
            self._state = CheckedIn(state.session)
        else:
            raise self._invalid("cancel")
        self._retained = None
        logger.info("User %s: pending %s cancelled", self._user_id, state.kind.value)
        return self._state

    async def request_off_premises_exception(
        self,
        reason: str,
        sample: Optional[PositionSample] = None,
        now: Optional[datetime] = None,
        *,
        device: Optional[DeviceIdentity] = None,
    ) -> ControllerState:
        now = now or self._clock()
        policy = self._policy.policy
        if not policy.off_premises_enabled:
            raise PolicyError("Off-premises check-in is disabled")
        if not isinstance(self._state, NoSession) or self._offer is None:
            raise self._invalid("request an off-premises check-in")
        if self._offer.offered_at.date() != now.date():
            self._offer = None
            raise self._invalid("request an off-premises check-in")
        if self._approvals is None:
            raise PolicyError("Off-premises approvals are not available")

        text = require_reason(reason, "Reason", min_len=policy.min_reason_length, max_len=policy.max_reason_length)
        location = sample or self._offer.sample

        action = AttendanceAction.CHECK_IN
        self._enter(action, now, debounce=False)
        try:
            request_id = await asyncio.to_thread(self._approvals.submit_request, self._user_id, text, location)
        finally:
            self._leave(action)

        self._offer = None
        self._state = AwaitingOffPremisesApproval(
            reason=text,
            location=location,
            request_id=int(request_id),
            requested_at=now,
            device_id=self._caller(device, None, None, None).device_id,
        )
        logger.info("User %s: off-premises request %s submitted", self._user_id, request_id)
        return self._state

    async def handle_approval_decision(self, decision: ApprovalDecision) -> ControllerState:
        state = self._state
        if not isinstance(state, AwaitingOffPremisesApproval) or state.request_id != decision.request_id:
            logger.info(
                "User %s: ignoring decision for request %s in state %s",
                self._user_id,
                decision.request_id,
                state.kind.value,
            )
            return state

        if not decision.approved:
            self._state = NoSession()
            logger.info("User %s: off-premises request %s rejected", self._user_id, decision.request_id)
            return self._state

        session = AttendanceSession(
            user_id=self._user_id,
            work_date=state.requested_at.date(),
            check_in_time=state.requested_at,
            check_in_remote=True,
            status=AttendanceStatus.REMOTE,
            device_id=state.device_id,
        )
        try:
            return await self._commit(PendingCommit(AttendanceAction.CHECK_IN, session))
        except PersistenceError:
            # The approval itself stands; the user retries the commit.
            logger.exception("User %s: remote check-in for request %s not saved", self._user_id, decision.request_id)
            return self._state

    async def retry_commit(self) -> ControllerState:
        pending = self._retained
        if pending is None:
            raise self._invalid("retry a commit")
        self._enter(pending.action, self._clock(), debounce=False)
        try:
            return await self._commit(pending)
        finally:
            self._leave(pending.action)

    def _state_work_date(self):
        state = self._state
        if isinstance(state, (CheckedIn, CheckedOut, AwaitingEarlyCheckoutReason)):
            return state.session.work_date
        if isinstance(state, AwaitingLatenessReason):
            return state.draft.work_date
        if isinstance(state, AwaitingOffPremisesApproval):
            return state.requested_at.date()
        return None

    async def roll_over(self, now: Optional[datetime] = None) -> ControllerState:
        """Midnight housekeeping: auto-close yesterday's open session, then start fresh."""
        now = now or self._clock()
        work_date = self._state_work_date()
        if work_date is None or work_date >= now.date():
            if self._offer is not None and self._offer.offered_at.date() < now.date():
                self._offer = None
            return self._state

        state = self._state
        open_session: Optional[AttendanceSession] = None
        if isinstance(state, (CheckedIn, AwaitingEarlyCheckoutReason)):
            open_session = state.session

        self._verdict = None
        self._offer = None
        self._last_attempt.clear()

        if open_session is None:
            self._retained = None
            self._state = NoSession()
            logger.info("User %s: day rolled over from %s", self._user_id, work_date.isoformat())
            return self._state

        closed = open_session.closed(
            at=datetime.combine(open_session.work_date, AUTO_CLOSE_TIME),
            status=AttendanceStatus.AUTO_CLOSED,
            facility_id=open_session.check_in_facility_id,
            method=AUTO_CHECKOUT_METHOD,
        )
        logger.info("User %s: auto-closing session of %s", self._user_id, work_date.isoformat())
        return await self._commit(PendingCommit(AttendanceAction.CHECK_OUT, closed, ends_day=True))

    async def restore(self, now: Optional[datetime] = None) -> ControllerState:
        """Rebuild the state from stored records when the controller starts."""
        now = now or self._clock()
        self._restored = True
        if not isinstance(self._state, NoSession):
            return self._state

        yesterday = await asyncio.to_thread(
            self._store.get_for_user_and_date, self._user_id, now.date() - timedelta(days=1)
        )
        if yesterday is not None and yesterday.is_open:
            self._state = CheckedIn(yesterday)
            await self.roll_over(now)

        today = await asyncio.to_thread(self._store.get_for_user_and_date, self._user_id, now.date())
        if today is not None and today.check_in_time is not None:
            self._state = CheckedIn(today) if today.is_open else CheckedOut(today)
            logger.debug("User %s: restored %s", self._user_id, self._state.kind.value)
        return self._state

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
