from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AssignmentStatus, CourseStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, duplicate_key_as_conflict, fetchall, fetchone
from .model import CompletionLog, CourseAssignment, CourseCompletion
from .repository import CourseRepository

_COMPLETION_COLUMNS = (
    "completion_id, person_id, event_id, event_name, instructor_name, notes, status, "
    "started_at, completed_at, completed_by, category_id, subcategory_id"
)
_ASSIGNMENT_COLUMNS = "person_id, category_id, subcategory_id, assigned_at, assigned_by, status"
_LOG_COLUMNS = "person_id, subcategory_id, completed_at, note, status"


def _to_completion(r: Dict[str, Any]) -> CourseCompletion:
    return CourseCompletion(
        completion_id=int(r["completion_id"]),
        person_id=str(r["person_id"]),
        event_id=str(r["event_id"]),
        event_name=r.get("event_name") or "",
        instructor_name=r.get("instructor_name") or "",
        status=CourseStatus(r["status"]),
        started_at=r["started_at"],
        notes=r.get("notes"),
        completed_at=r.get("completed_at"),
        completed_by=r.get("completed_by"),
        category_id=r.get("category_id"),
        subcategory_id=r.get("subcategory_id"),
    )


def _to_assignment(r: Dict[str, Any]) -> CourseAssignment:
    return CourseAssignment(
        person_id=str(r["person_id"]),
        category_id=str(r["category_id"]),
        subcategory_id=str(r["subcategory_id"]),
        assigned_at=r["assigned_at"],
        status=AssignmentStatus(r["status"]),
        assigned_by=r.get("assigned_by"),
    )


def _to_log(r: Dict[str, Any]) -> CompletionLog:
    return CompletionLog(
        person_id=str(r["person_id"]),
        subcategory_id=str(r["subcategory_id"]),
        completed_at=r["completed_at"],
        note=r.get("note") or "",
        status=CourseStatus(r.get("status") or CourseStatus.COMPLETED.value),
    )


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # Course completions
    def get_completion(self, completion_id: int) -> Optional[CourseCompletion]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COMPLETION_COLUMNS} FROM course_completions WHERE completion_id=%s",
                (int(completion_id),),
            )
            r = fetchone(cur)
            return _to_completion(r) if r else None

    def find_completion(self, person_id: str, event_id: str) -> Optional[CourseCompletion]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COMPLETION_COLUMNS} FROM course_completions WHERE person_id=%s AND event_id=%s",
                (person_id, event_id),
            )
            r = fetchone(cur)
            return _to_completion(r) if r else None

    def _list_completions(self, where: str, value: str) -> Sequence[CourseCompletion]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COMPLETION_COLUMNS} FROM course_completions WHERE {where}=%s ORDER BY started_at DESC",
                (value,),
            )
            return [_to_completion(r) for r in fetchall(cur)]

    def list_completions_for_person(self, person_id: str) -> Sequence[CourseCompletion]:
        return self._list_completions("person_id", person_id)

    def list_completions_for_event(self, event_id: str) -> Sequence[CourseCompletion]:
        return self._list_completions("event_id", event_id)

    def create_completion(
        self,
        *,
        person_id: str,
        event_id: str,
        event_name: str,
        instructor_name: str,
        notes: Optional[str],
        started_at: datetime,
        category_id: Optional[str],
        subcategory_id: Optional[str],
    ) -> int:
        with duplicate_key_as_conflict("Course already started for this person"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO course_completions(
                        person_id, event_id, event_name, instructor_name, notes, status,
                        started_at, category_id, subcategory_id
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        person_id,
                        event_id,
                        event_name,
                        instructor_name,
                        notes,
                        CourseStatus.IN_PROGRESS.value,
                        started_at,
                        category_id,
                        subcategory_id,
                    ),
                )
                return int(cur.lastrowid)

    def update_completion_details(self, *, completion_id: int, instructor_name: str, notes: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE course_completions SET instructor_name=%s, notes=%s WHERE completion_id=%s",
                (instructor_name, notes, int(completion_id)),
            )
            return cur.rowcount > 0

    def mark_completed(self, *, completion_id: int, completed_at: datetime, completed_by: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE course_completions
                SET status=%s, completed_at=%s, completed_by=%s
                WHERE completion_id=%s AND status=%s
                """,
                (
                    CourseStatus.COMPLETED.value,
                    completed_at,
                    completed_by,
                    int(completion_id),
                    CourseStatus.IN_PROGRESS.value,
                ),
            )
            return cur.rowcount > 0

    def delete_completion(self, completion_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM course_completions WHERE completion_id=%s", (int(completion_id),))
            return cur.rowcount > 0

    # Course assignments
    def get_assignment(self, person_id: str, subcategory_id: str) -> Optional[CourseAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ASSIGNMENT_COLUMNS} FROM course_assignments WHERE person_id=%s AND subcategory_id=%s",
                (person_id, subcategory_id),
            )
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def list_assignments_for_person(self, person_id: str) -> Sequence[CourseAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ASSIGNMENT_COLUMNS} FROM course_assignments WHERE person_id=%s ORDER BY assigned_at ASC",
                (person_id,),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def create_assignment(
        self,
        *,
        person_id: str,
        category_id: str,
        subcategory_id: str,
        assigned_at: datetime,
        assigned_by: Optional[str],
        status: AssignmentStatus,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO course_assignments(
                    person_id, category_id, subcategory_id, assigned_at, assigned_by, status
                )
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (person_id, category_id, subcategory_id, assigned_at, assigned_by, status.value),
            )
            return cur.rowcount > 0

    def delete_assignment(self, person_id: str, subcategory_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM course_assignments WHERE person_id=%s AND subcategory_id=%s",
                (person_id, subcategory_id),
            )
            return cur.rowcount > 0

    # Completion logs
    def get_completion_log(self, person_id: str, subcategory_id: str) -> Optional[CompletionLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LOG_COLUMNS} FROM completion_logs WHERE person_id=%s AND subcategory_id=%s",
                (person_id, subcategory_id),
            )
            r = fetchone(cur)
            return _to_log(r) if r else None

    def list_completion_logs(self, person_id: str) -> Sequence[CompletionLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_LOG_COLUMNS} FROM completion_logs WHERE person_id=%s ORDER BY completed_at ASC",
                (person_id,),
            )
            return [_to_log(r) for r in fetchall(cur)]

    def append_completion_log(self, log: CompletionLog) -> bool:
        # The (person_id, subcategory_id) primary key absorbs a racing second append.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO completion_logs(person_id, subcategory_id, completed_at, note, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (log.person_id, log.subcategory_id, log.completed_at, log.note, log.status.value),
            )
            return cur.rowcount > 0

    def delete_completion_log(self, person_id: str, subcategory_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM completion_logs WHERE person_id=%s AND subcategory_id=%s",
                (person_id, subcategory_id),
            )
            return cur.rowcount > 0
