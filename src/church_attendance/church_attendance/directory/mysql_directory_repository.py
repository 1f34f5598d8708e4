from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import Person, Visitor
from .repository import DirectoryRepository

_PERSON_COLUMNS = "person_id, church_id, first_name, last_name, email, phone"
_VISITOR_COLUMNS = "visitor_id, church_id, first_name, last_name, email, phone"


def _to_person(r: Dict[str, Any]) -> Person:
    return Person(
        person_id=str(r["person_id"]),
        church_id=str(r["church_id"]),
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        email=r.get("email"),
        phone=r.get("phone"),
    )


def _to_visitor(r: Dict[str, Any]) -> Visitor:
    return Visitor(
        visitor_id=str(r["visitor_id"]),
        church_id=str(r["church_id"]),
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        email=r.get("email"),
        phone=r.get("phone"),
    )


class MySQLDirectoryRepository(DirectoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one_person(self, where: str, value: str) -> Optional[Person]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PERSON_COLUMNS} FROM people WHERE {where}=%s LIMIT 1", (value,))
            r = fetchone(cur)
            return _to_person(r) if r else None

    def find_person_by_id(self, person_id: str) -> Optional[Person]:
        return self._one_person("person_id", person_id)

    def find_person_by_phone(self, phone: str) -> Optional[Person]:
        return self._one_person("phone", phone)

    def find_person_by_email(self, email: str) -> Optional[Person]:
        return self._one_person("LOWER(email)", email.lower())

    def find_people_by_ids(self, person_ids: Iterable[str]) -> Mapping[str, Person]:
        ids = sorted({str(p) for p in person_ids if p})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_PERSON_COLUMNS} FROM people WHERE person_id IN ({placeholders(ids)})",
                tuple(ids),
            )
            return {p.person_id: p for p in map(_to_person, fetchall(cur))}

    def _one_visitor(self, church_id: str, where: str, value: str) -> Optional[Visitor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_VISITOR_COLUMNS} FROM visitors WHERE church_id=%s AND {where}=%s LIMIT 1",
                (church_id, value),
            )
            r = fetchone(cur)
            return _to_visitor(r) if r else None

    def find_visitor_by_phone(self, church_id: str, phone: str) -> Optional[Visitor]:
        return self._one_visitor(church_id, "phone", phone)

    def find_visitor_by_email(self, church_id: str, email: str) -> Optional[Visitor]:
        return self._one_visitor(church_id, "LOWER(email)", email.lower())
