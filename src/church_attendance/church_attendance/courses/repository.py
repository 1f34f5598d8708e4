from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AssignmentStatus
from .model import CompletionLog, CourseAssignment, CourseCompletion


class CourseRepository(Protocol):
    # Course completions
    def get_completion(self, completion_id: int) -> Optional[CourseCompletion]:
        raise NotImplementedError

    def find_completion(self, person_id: str, event_id: str) -> Optional[CourseCompletion]:
        raise NotImplementedError

    def list_completions_for_person(self, person_id: str) -> Sequence[CourseCompletion]:
        raise NotImplementedError

    def list_completions_for_event(self, event_id: str) -> Sequence[CourseCompletion]:
        raise NotImplementedError

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
        """Raises WriteConflict if the person already has a row for the event."""

        raise NotImplementedError

    def update_completion_details(self, *, completion_id: int, instructor_name: str, notes: Optional[str]) -> bool:
        raise NotImplementedError

    def mark_completed(self, *, completion_id: int, completed_at: datetime, completed_by: Optional[str]) -> bool:
        """Only transitions rows that are still in progress."""

        raise NotImplementedError

    def delete_completion(self, completion_id: int) -> bool:
        raise NotImplementedError

    # Course assignments
    def get_assignment(self, person_id: str, subcategory_id: str) -> Optional[CourseAssignment]:
        raise NotImplementedError

    def list_assignments_for_person(self, person_id: str) -> Sequence[CourseAssignment]:
        raise NotImplementedError

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
        """Returns False when the person already has the assignment."""

        raise NotImplementedError

    def delete_assignment(self, person_id: str, subcategory_id: str) -> bool:
        raise NotImplementedError

    # Completion logs
    def get_completion_log(self, person_id: str, subcategory_id: str) -> Optional[CompletionLog]:
        raise NotImplementedError

    def list_completion_logs(self, person_id: str) -> Sequence[CompletionLog]:
        raise NotImplementedError

    def append_completion_log(self, log: CompletionLog) -> bool:
        """Returns False when a log for (person, subcategory) already exists."""

        raise NotImplementedError

    def delete_completion_log(self, person_id: str, subcategory_id: str) -> bool:
        raise NotImplementedError
