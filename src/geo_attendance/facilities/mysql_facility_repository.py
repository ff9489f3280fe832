from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, normalize_mysql_time
from .model import Facility
from .repository import FacilityDirectory


class MySQLFacilityRepository(FacilityDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active_facilities(self) -> Sequence[Facility]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT location_id, name, latitude, longitude, radius_m,
                       check_in_start, check_in_end, standard_end_time,
                       requires_early_checkout_reason, is_active
                FROM locations
                WHERE is_active=1
                ORDER BY location_id
                """
            )
            rows = fetchall(cur)
            return [
                Facility(
                    id=str(r["location_id"]),
                    name=r["name"],
                    latitude=float(r["latitude"]),
                    longitude=float(r["longitude"]),
                    radius_m=float(r.get("radius_m") or 0),
                    check_in_window_start=normalize_mysql_time(r.get("check_in_start")),
                    check_in_window_end=normalize_mysql_time(r.get("check_in_end")),
                    standard_end_time=normalize_mysql_time(r.get("standard_end_time")),
                    requires_early_checkout_reason=bool(r.get("requires_early_checkout_reason")),
                    is_active=bool(r.get("is_active", True)),
                )
                for r in rows
            ]
