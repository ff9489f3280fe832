from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..positioning.model import PositionSample
from .model import OffPremisesRequest
from .repository import ApprovalStore

_COLUMNS = """
    request_id, user_id, reason, status, created_at, latitude, longitude, accuracy_m,
    decided_by, decided_at, admin_note
"""


def _to_request(r: dict) -> OffPremisesRequest:
    return OffPremisesRequest(
        request_id=int(r["request_id"]),
        user_id=int(r["user_id"]),
        reason=r["reason"],
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        latitude=float(r["latitude"]) if r.get("latitude") is not None else None,
        longitude=float(r["longitude"]) if r.get("longitude") is not None else None,
        accuracy_m=float(r["accuracy_m"]) if r.get("accuracy_m") is not None else None,
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        admin_note=r.get("admin_note"),
    )


class MySQLRequestRepository(ApprovalStore):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def submit_request(self, user_id: int, reason: str, location: Optional[PositionSample]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO off_premises_requests(user_id, reason, status, latitude, longitude, accuracy_m)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    reason,
                    RequestStatus.PENDING.value,
                    location.latitude if location else None,
                    location.longitude if location else None,
                    location.accuracy_m if location else None,
                ),
            )
            return int(cur.lastrowid)

    def get_request(self, request_id: int) -> Optional[OffPremisesRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM off_premises_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_requests(self, *, status: Optional[RequestStatus] = None, limit: int = 200) -> Sequence[OffPremisesRequest]:
        where = "WHERE status=%s" if status else ""
        params: tuple = (status.value, int(limit)) if status else (int(limit),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM off_premises_requests {where} ORDER BY created_at DESC LIMIT %s",
                params,
            )
            return [_to_request(r) for r in fetchall(cur)]

    def decide_request(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE off_premises_requests
                SET status=%s, decided_by=%s, decided_at=%s, admin_note=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, int(decided_by), decided_at, admin_note, int(request_id), RequestStatus.PENDING.value),
            )
            return cur.rowcount > 0
