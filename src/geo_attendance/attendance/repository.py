from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import AttendanceSession


class AttendanceStore(Protocol):
    """Durability boundary for attendance sessions.

    Implementations raise ``PersistenceError`` on any storage failure.
    """

    def commit_check_in(self, session: AttendanceSession) -> AttendanceSession:
        """Persist a new session; returns it with ``session_id`` assigned."""

        raise NotImplementedError

    def commit_check_out(self, session: AttendanceSession) -> AttendanceSession:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceSession]:
        raise NotImplementedError
