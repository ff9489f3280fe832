"""In-memory collaborators shared by the test modules."""

from __future__ import annotations

import asyncio
import math
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from geo_attendance.attendance.model import AttendanceSession
from geo_attendance.attendance.service import AttendanceSessionController
from geo_attendance.core.constants import EARTH_RADIUS_M
from geo_attendance.core.enums import DeviceClass, PositionSource, RequestStatus
from geo_attendance.core.exceptions import PersistenceError
from geo_attendance.facilities.model import Facility
from geo_attendance.facilities.repository import InMemoryFacilityDirectory
from geo_attendance.policy.context import PolicyContext
from geo_attendance.policy.model import AttendancePolicy
from geo_attendance.positioning.model import PositionSample
from geo_attendance.proximity.tolerance import DeviceRadius, ToleranceProfile
from geo_attendance.requests.events import ApprovalEvents
from geo_attendance.requests.model import OffPremisesRequest

HQ = Facility(id="hq", name="Head Office", latitude=10.7769, longitude=106.7009, radius_m=50)
ANNEX = Facility(
    id="annex",
    name="Annex",
    latitude=10.7800,
    longitude=106.7100,
    radius_m=50,
    requires_early_checkout_reason=True,
)

STOCK_TOLERANCE = ToleranceProfile(
    device_radii={
        DeviceClass.MOBILE: DeviceRadius(400, 400),
        DeviceClass.TABLET: DeviceRadius(400, 400),
        DeviceClass.LAPTOP: DeviceRadius(700, 700),
        DeviceClass.DESKTOP: DeviceRadius(2000, 1000),
    },
    global_fallback_m=100,
)


def north_of(facility: Facility, meters: float) -> tuple:
    """Coordinates ``meters`` due north of a facility."""
    return facility.latitude + math.degrees(meters / EARTH_RADIUS_M), facility.longitude


def sample_at(latitude: float, longitude: float, accuracy_m: float = 15.0, *, at: Optional[datetime] = None) -> PositionSample:
    return PositionSample(
        latitude=latitude,
        longitude=longitude,
        accuracy_m=accuracy_m,
        captured_at=at or datetime(2026, 2, 2, 8, 0),
        source=PositionSource.REPORTED,
    )


def sample_near(facility: Facility, meters: float = 0.0, accuracy_m: float = 15.0) -> PositionSample:
    return sample_at(*north_of(facility, meters), accuracy_m=accuracy_m)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeDevice:
    def __init__(self, device_class: DeviceClass = DeviceClass.MOBILE, device_id: str = "device-1"):
        self._device_class = device_class
        self._device_id = device_id

    @property
    def device_id(self) -> str:
        return self._device_id

    def current_device_class(self) -> DeviceClass:
        return self._device_class


class InMemoryAttendanceStore:
    def __init__(self):
        self._by_user_date: dict[tuple[int, date], AttendanceSession] = {}
        self._id = 0
        self.fail_next = 0
        self.calls: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    def _maybe_fail(self, op: str) -> None:
        self.calls.append(op)
        if self.fail_next:
            self.fail_next -= 1
            raise PersistenceError("store offline", operation=op)

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceSession]:
        return self._by_user_date.get((user_id, work_date))

    def commit_check_in(self, session: AttendanceSession) -> AttendanceSession:
        self._maybe_fail("check_in")
        self._id += 1
        saved = replace(session, session_id=self._id)
        self._by_user_date[(session.user_id, session.work_date)] = saved
        return saved

    def commit_check_out(self, session: AttendanceSession) -> AttendanceSession:
        self._maybe_fail("check_out")
        self._by_user_date[(session.user_id, session.work_date)] = session
        return session

    def put(self, session: AttendanceSession) -> None:
        self._by_user_date[(session.user_id, session.work_date)] = session


class InMemoryApprovalStore:
    def __init__(self):
        self._requests: dict[int, OffPremisesRequest] = {}
        self._next_id = 1

    def submit_request(self, user_id, reason, location):
        rid = self._next_id
        self._next_id += 1
        self._requests[rid] = OffPremisesRequest(
            request_id=rid,
            user_id=int(user_id),
            reason=reason,
            status=RequestStatus.PENDING,
            created_at=datetime(2026, 2, 2, 8, 0),
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            accuracy_m=location.accuracy_m if location else None,
        )
        return rid

    def get_request(self, request_id):
        return self._requests.get(int(request_id))

    def list_requests(self, *, status=None, limit=200):
        rows = [r for r in self._requests.values() if status is None or r.status == status]
        return rows[:limit]

    def decide_request(self, *, request_id, status, decided_by, decided_at, admin_note=None):
        req = self._requests.get(int(request_id))
        if not req or req.status != RequestStatus.PENDING:
            return False
        self._requests[int(request_id)] = replace(
            req,
            status=status,
            decided_by=decided_by,
            decided_at=decided_at,
            admin_note=admin_note,
        )
        return True


class InMemoryUsers:
    def __init__(self, profiles=None):
        self.profiles = {p.user_id: p for p in (profiles or [])}

    def get_profile(self, user_id):
        return self.profiles.get(int(user_id))


def build_controller(
    *,
    clock: FakeClock,
    facilities=(HQ, ANNEX),
    store: Optional[InMemoryAttendanceStore] = None,
    approvals: Optional[InMemoryApprovalStore] = None,
    events: Optional[ApprovalEvents] = None,
    users: Optional[InMemoryUsers] = None,
    policy: Optional[AttendancePolicy] = None,
    tolerance: ToleranceProfile = STOCK_TOLERANCE,
    device: Optional[FakeDevice] = None,
    acquirer=None,
    user_id: int = 1,
) -> AttendanceSessionController:
    return AttendanceSessionController(
        user_id,
        facilities=InMemoryFacilityDirectory(facilities),
        store=store if store is not None else InMemoryAttendanceStore(),
        policy=PolicyContext.fixed(policy or AttendancePolicy(), tolerance),
        device=device or FakeDevice(),
        acquirer=acquirer,
        approvals=approvals if approvals is not None else InMemoryApprovalStore(),
        events=events,
        users=users,
        clock=clock,
    )
