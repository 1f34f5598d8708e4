from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import AssignmentStatus, CourseStatus
from ..events.model import EventRecord


@dataclass(frozen=True)
class CourseCompletion:
    """A person's progress on one course event (in-progress -> completed)."""

    completion_id: int
    person_id: str
    event_id: str
    event_name: str
    instructor_name: str
    status: CourseStatus
    started_at: datetime
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == CourseStatus.COMPLETED


@dataclass(frozen=True)
class CourseAssignment:
    person_id: str
    category_id: str
    subcategory_id: str
    assigned_at: datetime
    status: AssignmentStatus
    assigned_by: Optional[str] = None


@dataclass(frozen=True)
class CompletionLog:
    """Marks a subcategory as fully completed by a person. Derived, append-once."""

    person_id: str
    subcategory_id: str
    completed_at: datetime
    note: str
    status: CourseStatus = CourseStatus.COMPLETED


@dataclass(frozen=True)
class EventSlot:
    """The event counted for one ``order`` position of a subcategory."""

    event: EventRecord
    completion: Optional[CourseCompletion] = None

    @property
    def order(self) -> Optional[int]:
        return self.event.order

    @property
    def is_completed(self) -> bool:
        return bool(self.completion and self.completion.is_completed)


@dataclass(frozen=True)
class SubcategoryProgress:
    person_id: str
    subcategory_id: str
    is_assigned: bool
    is_completed: bool
    completion_percentage: int
    completed_count: int
    in_progress_count: int
    total_count: int
    slots: Tuple[EventSlot, ...] = field(default_factory=tuple)
    category_id: Optional[str] = None
    required: bool = False
    completed_at: Optional[datetime] = None
    completion_note: Optional[str] = None
