from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.enums import RegistrationSource
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, duplicate_key_as_conflict, fetchall, fetchone
from .model import EDITABLE_FIELDS, Registration
from .repository import RegistrationRepository

_COLUMNS = (
    "registration_id, event_id, person_id, church_id, status, registered_at, source, "
    "first_name, last_name, email, phone, comments"
)


def _to_registration(r: Dict[str, Any]) -> Registration:
    return Registration(
        registration_id=int(r["registration_id"]),
        event_id=str(r["event_id"]),
        person_id=r.get("person_id"),
        church_id=str(r["church_id"]),
        status=r.get("status") or "registered",
        registered_at=r["registered_at"],
        source=RegistrationSource(r["source"]),
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        email=r.get("email"),
        phone=r.get("phone"),
        comments=r.get("comments"),
    )


class MySQLRegistrationRepository(RegistrationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM event_registrations WHERE registration_id=%s",
                (int(registration_id),),
            )
            r = fetchone(cur)
            return _to_registration(r) if r else None

    def find_for_event_and_person(self, event_id: str, person_id: str) -> Sequence[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM event_registrations
                WHERE event_id=%s AND person_id=%s
                ORDER BY registered_at ASC, registration_id ASC
                """,
                (event_id, person_id),
            )
            return [_to_registration(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        event_id: str,
        person_id: Optional[str],
        church_id: str,
        status: str,
        registered_at: datetime,
        source: RegistrationSource,
        first_name: str,
        last_name: str,
        email: Optional[str],
        phone: Optional[str],
        comments: Optional[str] = None,
    ) -> int:
        with duplicate_key_as_conflict("Person is already registered for this event"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO event_registrations(
                        event_id, person_id, church_id, status, registered_at, source,
                        first_name, last_name, email, phone, comments
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        event_id,
                        person_id,
                        church_id,
                        status,
                        registered_at,
                        source.value,
                        first_name,
                        last_name,
                        email,
                        phone,
                        comments,
                    ),
                )
                return int(cur.lastrowid)

    def delete(self, registration_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM event_registrations WHERE registration_id=%s", (int(registration_id),))
            return cur.rowcount > 0

    def update_fields(self, registration_id: int, fields: Mapping[str, object]) -> bool:
        # Column names come from a fixed whitelist; values are always parameters.
        columns = [c for c in fields if c in EDITABLE_FIELDS]
        if not columns:
            return self.get_by_id(registration_id) is not None

        assignments = ", ".join(f"{c}=%s" for c in columns)
        params = [fields[c] for c in columns] + [int(registration_id)]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE event_registrations SET {assignments} WHERE registration_id=%s", tuple(params))
            if cur.rowcount > 0:
                return True
            # MySQL reports 0 affected rows when values are unchanged.
            cur.execute("SELECT 1 AS found FROM event_registrations WHERE registration_id=%s", (int(registration_id),))
            return fetchone(cur) is not None

    def list_by_event(self, event_id: str) -> Sequence[Registration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM event_registrations
                WHERE event_id=%s
                ORDER BY registered_at DESC, registration_id DESC
                """,
                (event_id,),
            )
            return [_to_registration(r) for r in fetchall(cur)]
