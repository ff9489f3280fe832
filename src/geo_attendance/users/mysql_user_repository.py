from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Department, UserProfile
from .repository import UserDirectory


class MySQLUserRepository(UserDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name, u.role, d.dept_id, d.dept_code, d.dept_name
                FROM users u
                LEFT JOIN departments d ON d.dept_id = u.dept_id
                WHERE u.user_id=%s AND u.is_active=1
                """,
                (user_id,),
            )
            row = fetchone(cur)
            if not row:
                return None
            department = None
            if row.get("dept_id") is not None:
                department = Department(
                    dept_id=int(row["dept_id"]),
                    code=row.get("dept_code") or "",
                    name=row.get("dept_name") or "",
                )
            return UserProfile(
                user_id=int(row["user_id"]),
                full_name=row["full_name"],
                role=Role(row["role"]),
                department=department,
            )
