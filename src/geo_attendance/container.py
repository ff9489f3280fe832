from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import ModuleType
from typing import Callable, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.registry import ControllerRegistry
from .attendance.repository import AttendanceStore
from .attendance.service import AttendanceSessionController
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_FACILITY_REFRESH_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .facilities.mysql_facility_repository import MySQLFacilityRepository
from .facilities.repository import CachedFacilityDirectory, FacilityDirectory
from .policy.context import PolicyContext
from .policy.loader import load_policy
from .requests.events import ApprovalEvents
from .requests.mysql_request_repository import MySQLRequestRepository
from .requests.repository import ApprovalStore
from .requests.service import OffPremisesService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserDirectory


@dataclass(frozen=True)
class Container:
    facilities: CachedFacilityDirectory
    attendance_store: AttendanceStore
    approvals: ApprovalStore
    users: UserDirectory
    events: ApprovalEvents
    policy: PolicyContext

    controllers: ControllerRegistry
    off_premises_service: OffPremisesService
    clock: Callable[[], datetime]
    conn: Optional[DatabaseConnection] = None


def assemble_container(
    *,
    facilities: FacilityDirectory,
    attendance_store: AttendanceStore,
    approvals: ApprovalStore,
    users: UserDirectory,
    policy: PolicyContext,
    facility_refresh_seconds: float = DEFAULT_FACILITY_REFRESH_SECONDS,
    clock: Callable[[], datetime] = now_local,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    cached = CachedFacilityDirectory(facilities, ttl_seconds=facility_refresh_seconds)
    events = ApprovalEvents()
    strategy_factory = AttendanceStrategyFactory()

    def new_controller(user_id: int) -> AttendanceSessionController:
        return AttendanceSessionController(
            user_id,
            facilities=cached,
            store=attendance_store,
            policy=policy,
            approvals=approvals,
            events=events,
            users=users,
            strategy_factory=strategy_factory,
            clock=clock,
        )

    return Container(
        facilities=cached,
        attendance_store=attendance_store,
        approvals=approvals,
        users=users,
        events=events,
        policy=policy,
        controllers=ControllerRegistry(new_controller),
        off_premises_service=OffPremisesService(approvals, events, attendance_store),
        clock=clock,
        conn=conn,
    )


def build_container(*, db_config: dict, settings: ModuleType) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return assemble_container(
        facilities=MySQLFacilityRepository(conn),
        attendance_store=MySQLAttendanceRepository(conn),
        approvals=MySQLRequestRepository(conn),
        users=MySQLUserRepository(conn),
        policy=PolicyContext(lambda: load_policy(settings)),
        facility_refresh_seconds=float(getattr(settings, "FACILITY_REFRESH_SECONDS", DEFAULT_FACILITY_REFRESH_SECONDS)),
        conn=conn,
    )
