from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional

from ..core.enums import AttendanceStatus
from ..core.exceptions import PersistenceError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import AttendanceSession
from .repository import AttendanceStore

_COLUMNS = """
    attendance_id, user_id, work_date, check_in_time, check_in_location_id, check_in_remote,
    check_out_time, check_out_location_id, late_reason, early_checkout_reason, status,
    check_out_method, device_id
"""


def _to_session(r: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        check_in_time=r.get("check_in_time"),
        check_in_facility_id=str(r["check_in_location_id"]) if r.get("check_in_location_id") is not None else None,
        check_in_remote=bool(r.get("check_in_remote")),
        check_out_time=r.get("check_out_time"),
        check_out_facility_id=str(r["check_out_location_id"]) if r.get("check_out_location_id") is not None else None,
        lateness_reason=r.get("late_reason"),
        early_checkout_reason=r.get("early_checkout_reason"),
        status=AttendanceStatus(r["status"]),
        check_out_method=r.get("check_out_method"),
        device_id=r.get("device_id"),
    )


class MySQLAttendanceRepository(AttendanceStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND work_date=%s",
                (user_id, work_date),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def commit_check_in(self, session: AttendanceSession) -> AttendanceSession:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    user_id, work_date, check_in_time, check_in_location_id, check_in_remote,
                    late_reason, status, device_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    session.user_id,
                    session.work_date,
                    session.check_in_time,
                    session.check_in_facility_id,
                    int(session.check_in_remote),
                    session.lateness_reason,
                    session.status.value,
                    session.device_id,
                ),
            )
            return replace(session, session_id=int(cur.lastrowid))

    def commit_check_out(self, session: AttendanceSession) -> AttendanceSession:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, check_out_location_id=%s, early_checkout_reason=%s,
                    status=%s, check_out_method=%s
                WHERE user_id=%s AND work_date=%s AND check_out_time IS NULL
                """,
                (
                    session.check_out_time,
                    session.check_out_facility_id,
                    session.early_checkout_reason,
                    session.status.value,
                    session.check_out_method,
                    session.user_id,
                    session.work_date,
                ),
            )
            if cur.rowcount == 0:
                raise PersistenceError(
                    "No open attendance record to close",
                    user_id=session.user_id,
                    work_date=session.work_date.isoformat(),
                )
            return session
