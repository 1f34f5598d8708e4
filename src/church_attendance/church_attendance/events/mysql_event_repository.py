from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import EventRecord, Room, Subcategory
from .repository import EventCatalog

_EVENT_COLUMNS = (
    "event_id, church_id, title, start_at, end_at, category_id, subcategory_id, required, sort_order"
)


def _to_event(r: Dict[str, Any]) -> EventRecord:
    order = r.get("sort_order")
    return EventRecord(
        event_id=str(r["event_id"]),
        church_id=str(r["church_id"]),
        title=r.get("title") or "",
        start_at=r.get("start_at"),
        end_at=r.get("end_at"),
        category_id=r.get("category_id"),
        subcategory_id=r.get("subcategory_id"),
        required=bool(r.get("required")),
        order=int(order) if order is not None else None,
    )


class MySQLEventRepository(EventCatalog):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EVENT_COLUMNS} FROM events WHERE event_id=%s", (event_id,))
            r = fetchone(cur)
            return _to_event(r) if r else None

    def get_events_by_subcategory(self, subcategory_id: str) -> Sequence[EventRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS}
                FROM events
                WHERE subcategory_id=%s
                ORDER BY sort_order IS NULL, sort_order ASC, start_at ASC
                """,
                (subcategory_id,),
            )
            return [_to_event(r) for r in fetchall(cur)]

    def get_subcategory(self, subcategory_id: str) -> Optional[Subcategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT subcategory_id, category_id, name, required, sort_order
                FROM course_subcategories
                WHERE subcategory_id=%s
                """,
                (subcategory_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            order = r.get("sort_order")
            return Subcategory(
                subcategory_id=str(r["subcategory_id"]),
                category_id=str(r["category_id"]),
                name=r.get("name") or "",
                required=bool(r.get("required")),
                order=int(order) if order is not None else None,
            )

    def list_rooms_for_event(self, event_id: str) -> Sequence[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT room_id, room_name FROM event_rooms WHERE event_id=%s ORDER BY position ASC",
                (event_id,),
            )
            return [Room(room_id=str(r["room_id"]), name=r["room_name"]) for r in fetchall(cur)]

    def assign_rooms(self, event_id: str, rooms: Sequence[Room]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM event_rooms WHERE event_id=%s", (event_id,))
            for position, room in enumerate(rooms):
                cur.execute(
                    "INSERT INTO event_rooms(event_id, room_id, room_name, position) VALUES(%s,%s,%s,%s)",
                    (event_id, room.room_id, room.name, position),
                )

    def list_church_rooms(self, church_id: str) -> Sequence[Room]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT room_id, name FROM rooms WHERE church_id=%s ORDER BY name ASC", (church_id,))
            return [Room(room_id=str(r["room_id"]), name=r["name"]) for r in fetchall(cur)]
