from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Worksite
from .repository import WorksiteRepository


class MySQLWorksiteRepository(WorksiteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[Worksite]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT site_id, site_name, latitude, longitude, radius_m, address
                FROM worksites
                WHERE is_active=1
                ORDER BY site_id
                """
            )
            return [
                Worksite(
                    site_id=str(r["site_id"]),
                    name=r["site_name"],
                    latitude=float(r["latitude"]),
                    longitude=float(r["longitude"]),
                    radius_m=float(r["radius_m"]) if r.get("radius_m") is not None else None,
                    address=r.get("address"),
                )
                for r in fetchall(cur)
            ]
