from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import ClassVar, Optional, Union

from ..core.enums import AttendanceAction, AttendanceStatus, SessionState
from ..core.exceptions import InvalidStateTransition
from ..positioning.model import PositionSample


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one user's attendance for one calendar day."""

    user_id: int
    work_date: date
    session_id: Optional[int] = None
    check_in_time: Optional[datetime] = None
    check_in_facility_id: Optional[str] = None
    check_in_remote: bool = False
    check_out_time: Optional[datetime] = None
    check_out_facility_id: Optional[str] = None
    lateness_reason: Optional[str] = None
    early_checkout_reason: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.ON_TIME
    check_out_method: Optional[str] = None
    device_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_in_time is not None and self.check_out_time is None

    def closed(
        self,
        *,
        at: datetime,
        status: AttendanceStatus,
        facility_id: Optional[str] = None,
        method: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> "AttendanceSession":
        if not self.is_open:
            raise InvalidStateTransition(
                "Check-out needs an open session",
                work_date=self.work_date.isoformat(),
            )
        return replace(
            self,
            check_out_time=at,
            check_out_facility_id=facility_id,
            status=status,
            check_out_method=method,
            early_checkout_reason=reason if reason is not None else self.early_checkout_reason,
        )

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "work_date": self.work_date.isoformat(),
            "check_in_time": self.check_in_time.isoformat() if self.check_in_time else None,
            "check_in_facility_id": self.check_in_facility_id,
            "check_in_remote": self.check_in_remote,
            "check_out_time": self.check_out_time.isoformat() if self.check_out_time else None,
            "check_out_facility_id": self.check_out_facility_id,
            "lateness_reason": self.lateness_reason,
            "early_checkout_reason": self.early_checkout_reason,
            "status": self.status.value,
            "check_out_method": self.check_out_method,
        }


# Controller states. Exactly one is current; transitions build the next one.


@dataclass(frozen=True)
class NoSession:
    kind: ClassVar[SessionState] = SessionState.NO_SESSION


@dataclass(frozen=True)
class CheckedIn:
    session: AttendanceSession
    kind: ClassVar[SessionState] = SessionState.CHECKED_IN


@dataclass(frozen=True)
class CheckedOut:
    session: AttendanceSession
    kind: ClassVar[SessionState] = SessionState.CHECKED_OUT


@dataclass(frozen=True)
class AwaitingLatenessReason:
    """A validated check-in paused until a lateness reason arrives."""

    draft: AttendanceSession
    kind: ClassVar[SessionState] = SessionState.AWAITING_LATENESS_REASON


@dataclass(frozen=True)
class AwaitingEarlyCheckoutReason:
    """A validated check-out paused; ``session`` is the still-open session."""

    session: AttendanceSession
    draft: AttendanceSession
    kind: ClassVar[SessionState] = SessionState.AWAITING_EARLY_CHECKOUT_REASON


@dataclass(frozen=True)
class AwaitingOffPremisesApproval:
    reason: str
    location: Optional[PositionSample]
    request_id: int
    requested_at: datetime
    device_id: Optional[str] = None
    kind: ClassVar[SessionState] = SessionState.AWAITING_OFF_PREMISES_APPROVAL


ControllerState = Union[
    NoSession,
    CheckedIn,
    CheckedOut,
    AwaitingLatenessReason,
    AwaitingEarlyCheckoutReason,
    AwaitingOffPremisesApproval,
]


@dataclass(frozen=True)
class PendingCommit:
    """Decision retained after a failed store call, replayed by ``retry_commit``."""

    action: AttendanceAction
    session: AttendanceSession
    # Auto-close commits end the day, so success leads to NO_SESSION.
    ends_day: bool = False


@dataclass(frozen=True)
class OffPremisesOffer:
    """Recorded when a check-in fails proximity and escalation is allowed."""

    offered_at: datetime
    sample: Optional[PositionSample]
    nearest_facility: Optional[str] = None
    distance_m: Optional[float] = None


def state_to_dict(state: ControllerState) -> dict:
    data: dict = {"state": state.kind.value}
    session = getattr(state, "session", None) or getattr(state, "draft", None)
    if session is not None:
        data["session"] = session.to_dict()
    if isinstance(state, AwaitingOffPremisesApproval):
        data["request_id"] = state.request_id
        data["reason"] = state.reason
    return data
