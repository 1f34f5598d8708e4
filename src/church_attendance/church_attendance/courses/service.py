from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..common.validators import optional_text, require_non_empty
from ..core.constants import COMPLETION_LOG_NOTE
from ..core.enums import AssignmentStatus, CourseStatus
from ..core.exceptions import NotFound, PersonNotFound, WriteConflict
from ..directory.repository import DirectoryRepository
from ..events.repository import EventCatalog
from .model import CompletionLog, CourseAssignment, CourseCompletion, SubcategoryProgress
from .progress import (
    build_slots,
    completed_event_ids,
    completion_percentage,
    index_by_event,
    required_event_ids,
    required_set_satisfied,
)
from .repository import CourseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionOutcome:
    completion: CourseCompletion
    subcategory_completed: bool = False


class CourseProgressAggregator:
    """Use case: course progress at event, subcategory and required-set level.

    The subcategory's CompletionLog is derived: it is re-evaluated after each
    completion change instead of being set directly.
    """

    def __init__(
        self,
        courses: CourseRepository,
        catalog: EventCatalog,
        directory: DirectoryRepository,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._courses = courses
        self._catalog = catalog
        self._directory = directory
        self._clock = clock

    # ---- event level -----------------------------------------------------

    def start_course(
        self,
        person_id: str,
        event_id: str,
        *,
        instructor_name: str,
        notes: str = "",
        started_by: Optional[str] = None,
    ) -> CourseCompletion:
        instructor_name = require_non_empty(instructor_name, "Instructor name")

        event = self._catalog.get_event(event_id)
        if not event:
            raise NotFound("Event not found")
        if not self._directory.find_person_by_id(person_id):
            raise PersonNotFound("User not found")

        now = self._clock()
        existing = self._courses.find_completion(person_id, event_id)
        if not existing:
            try:
                completion_id = self._courses.create_completion(
                    person_id=person_id,
                    event_id=event_id,
                    event_name=event.title,
                    instructor_name=instructor_name,
                    notes=optional_text(notes),
                    started_at=now,
                    category_id=event.category_id,
                    subcategory_id=event.subcategory_id,
                )
                logger.info("Started course event %s for person %s", event_id, person_id)
            except WriteConflict:
                logger.warning("Concurrent course start for person %s on event %s", person_id, event_id)
                existing = self._courses.find_completion(person_id, event_id)
                if not existing:
                    raise

        if existing:
            # Restarting only refreshes the details; a completed course stays completed.
            self._courses.update_completion_details(
                completion_id=existing.completion_id,
                instructor_name=instructor_name,
                notes=optional_text(notes),
            )
            completion_id = existing.completion_id

        if event.is_course_event and not self._courses.get_assignment(person_id, event.subcategory_id):
            self._courses.create_assignment(
                person_id=person_id,
                category_id=event.category_id,
                subcategory_id=event.subcategory_id,
                assigned_at=now,
                assigned_by=started_by,
                status=AssignmentStatus.IN_PROGRESS,
            )
            logger.info("Auto-assigned subcategory %s to person %s", event.subcategory_id, person_id)

        return self._get(completion_id)

    def complete_course(self, completion_id: int, *, completed_by: Optional[str] = None) -> CompletionOutcome:
        completion = self._get(completion_id)
        if not completion.is_completed:
            marked = self._courses.mark_completed(
                completion_id=completion_id,
                completed_at=self._clock(),
                completed_by=completed_by,
            )
            if marked:
                logger.info("Completed course event %s for person %s", completion.event_id, completion.person_id)
            completion = self._get(completion_id)

        subcategory_completed = False
        if completion.subcategory_id:
            subcategory_completed = self.evaluate_subcategory(completion.person_id, completion.subcategory_id)
        return CompletionOutcome(completion=completion, subcategory_completed=subcategory_completed)

    def remove_completion(self, completion_id: int) -> CourseCompletion:
        completion = self._get(completion_id)
        if not self._courses.delete_completion(completion_id):
            raise NotFound("Completion record not found")
        logger.info("Removed course completion %s (event %s)", completion_id, completion.event_id)

        if not completion.subcategory_id:
            return completion
        required = required_event_ids(self._catalog.get_events_by_subcategory(completion.subcategory_id))
        if completion.event_id in required:
            if self._courses.delete_completion_log(completion.person_id, completion.subcategory_id):
                logger.info(
                    "Rolled back completion of subcategory %s for person %s",
                    completion.subcategory_id,
                    completion.person_id,
                )
        return completion

    # ---- required-set level ---------------------------------------------

    def evaluate_subcategory(self, person_id: str, subcategory_id: str) -> bool:
        """Append the subcategory's CompletionLog once all required events are done.

        Returns True only when this call appended the log.
        """

        if self._courses.get_completion_log(person_id, subcategory_id):
            return False

        required = required_event_ids(self._catalog.get_events_by_subcategory(subcategory_id))
        completed = completed_event_ids(self._courses.list_completions_for_person(person_id))
        if not required_set_satisfied(required, completed):
            return False

        appended = self._courses.append_completion_log(
            CompletionLog(
                person_id=person_id,
                subcategory_id=subcategory_id,
                completed_at=self._clock(),
                note=COMPLETION_LOG_NOTE,
                status=CourseStatus.COMPLETED,
            )
        )
        if appended:
            logger.info("Person %s completed subcategory %s", person_id, subcategory_id)
        return appended

    # ---- assignments -----------------------------------------------------

    def assign_subcategory(
        self,
        person_id: str,
        *,
        category_id: str,
        subcategory_id: str,
        assigned_by: Optional[str] = None,
    ) -> CourseAssignment:
        category_id = require_non_empty(category_id, "Category")
        subcategory_id = require_non_empty(subcategory_id, "Subcategory")
        if not self._directory.find_person_by_id(person_id):
            raise PersonNotFound("User not found")

        self._courses.create_assignment(
            person_id=person_id,
            category_id=category_id,
            subcategory_id=subcategory_id,
            assigned_at=self._clock(),
            assigned_by=assigned_by,
            status=AssignmentStatus.ASSIGNED,
        )
        assignment = self._courses.get_assignment(person_id, subcategory_id)
        if not assignment:
            raise NotFound("Assignment not found")
        return assignment

    def unassign_subcategory(self, person_id: str, subcategory_id: str) -> None:
        if not self._courses.delete_assignment(person_id, subcategory_id):
            raise NotFound("Assignment not found")
        logger.info("Unassigned subcategory %s from person %s", subcategory_id, person_id)

    # ---- queries ---------------------------------------------------------

    def subcategory_progress(self, person_id: str, subcategory_id: str) -> SubcategoryProgress:
        completions = self._courses.list_completions_for_person(person_id)
        return self._progress(
            person_id,
            subcategory_id,
            completions=completions,
            assignment=self._courses.get_assignment(person_id, subcategory_id),
            log=self._courses.get_completion_log(person_id, subcategory_id),
        )

    def person_progress(self, person_id: str) -> List[SubcategoryProgress]:
        completions = self._courses.list_completions_for_person(person_id)
        assignments = {a.subcategory_id: a for a in self._courses.list_assignments_for_person(person_id)}
        logs = {log.subcategory_id: log for log in self._courses.list_completion_logs(person_id)}

        subcategory_ids: Dict[str, None] = {}
        for sid in list(assignments) + [c.subcategory_id for c in completions if c.subcategory_id] + list(logs):
            subcategory_ids.setdefault(sid, None)

        return [
            self._progress(
                person_id,
                sid,
                completions=completions,
                assignment=assignments.get(sid),
                log=logs.get(sid),
            )
            for sid in subcategory_ids
        ]

    def list_for_event(self, event_id: str) -> Sequence[CourseCompletion]:
        rows = list(self._courses.list_completions_for_event(event_id))
        rows.sort(key=lambda c: c.started_at, reverse=True)
        return rows

    def _progress(
        self,
        person_id: str,
        subcategory_id: str,
        *,
        completions: Sequence[CourseCompletion],
        assignment: Optional[CourseAssignment],
        log: Optional[CompletionLog],
    ) -> SubcategoryProgress:
        events = self._catalog.get_events_by_subcategory(subcategory_id)
        subcategory = self._catalog.get_subcategory(subcategory_id)
        by_event = index_by_event(c for c in completions if c.person_id == person_id)
        slots = build_slots(events, by_event)

        category_id = None
        if subcategory:
            category_id = subcategory.category_id
        elif assignment:
            category_id = assignment.category_id
        elif events:
            category_id = events[0].category_id

        return SubcategoryProgress(
            person_id=person_id,
            subcategory_id=subcategory_id,
            is_assigned=assignment is not None,
            is_completed=log is not None,
            completion_percentage=completion_percentage(slots),
            completed_count=sum(1 for s in slots if s.is_completed),
            in_progress_count=sum(1 for s in slots if s.completion and not s.is_completed),
            total_count=len(slots),
            slots=tuple(slots),
            category_id=category_id,
            required=bool(subcategory and subcategory.required),
            completed_at=log.completed_at if log else None,
            completion_note=log.note if log else None,
        )

    def _get(self, completion_id: int) -> CourseCompletion:
        completion = self._courses.get_completion(completion_id)
        if not completion:
            raise NotFound("Completion record not found")
        return completion
