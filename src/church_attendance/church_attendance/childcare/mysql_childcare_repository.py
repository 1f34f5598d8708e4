from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import ChildCareStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ChildCareEntry
from .repository import ChildCareRepository

_COLUMNS = (
    "entry_id, person_id, event_id, child_name, age, allergies, room_id, room_name, notes, "
    "check_in_time, status, check_out_time"
)


def _to_entry(r: Dict[str, Any]) -> ChildCareEntry:
    return ChildCareEntry(
        entry_id=int(r["entry_id"]),
        person_id=str(r["person_id"]),
        event_id=str(r["event_id"]),
        child_name=r["child_name"],
        room_id=str(r["room_id"]),
        room_name=r["room_name"],
        check_in_time=r["check_in_time"],
        status=ChildCareStatus(r["status"]),
        age=r.get("age"),
        allergies=r.get("allergies"),
        notes=r.get("notes"),
        check_out_time=r.get("check_out_time"),
    )


class MySQLChildCareRepository(ChildCareRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, entry_id: int) -> Optional[ChildCareEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM child_care_entries WHERE entry_id=%s", (int(entry_id),))
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def create_checkin(
        self,
        *,
        person_id: str,
        event_id: str,
        child_name: str,
        age: Optional[str],
        allergies: Optional[str],
        room_id: str,
        room_name: str,
        notes: Optional[str],
        check_in_time: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO child_care_entries(
                    person_id, event_id, child_name, age, allergies, room_id, room_name, notes,
                    check_in_time, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    person_id,
                    event_id,
                    child_name,
                    age,
                    allergies,
                    room_id,
                    room_name,
                    notes,
                    check_in_time,
                    ChildCareStatus.CHECKED_IN.value,
                ),
            )
            return int(cur.lastrowid)

    def mark_checked_out(self, *, entry_id: int, check_out_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE child_care_entries
                SET status=%s, check_out_time=%s
                WHERE entry_id=%s AND status=%s
                """,
                (ChildCareStatus.CHECKED_OUT.value, check_out_time, int(entry_id), ChildCareStatus.CHECKED_IN.value),
            )
            return cur.rowcount > 0

    def delete(self, entry_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM child_care_entries WHERE entry_id=%s", (int(entry_id),))
            return cur.rowcount > 0

    def _list(self, where: str, value: str) -> Sequence[ChildCareEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM child_care_entries WHERE {where}=%s ORDER BY check_in_time DESC",
                (value,),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def list_for_event(self, event_id: str) -> Sequence[ChildCareEntry]:
        return self._list("event_id", event_id)

    def list_for_person(self, person_id: str) -> Sequence[ChildCareEntry]:
        return self._list("person_id", person_id)
