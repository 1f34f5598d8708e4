from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Tuple

from ..childcare.model import ChildCareEntry
from ..childcare.service import ChildCareTracker
from ..courses.model import CourseCompletion
from ..courses.service import CourseProgressAggregator
from ..directory.model import Person
from ..directory.repository import DirectoryRepository
from ..registrations.model import Registration
from ..registrations.service import RegistrationLedger


@dataclass(frozen=True)
class ChildCareLogRow:
    entry: ChildCareEntry
    parent_name: str


@dataclass(frozen=True)
class CourseLogRow:
    completion: CourseCompletion
    first_name: str
    last_name: str


@dataclass(frozen=True)
class EventLogs:
    """Operator feed for one event; each list is newest first."""

    event_id: str
    registrations: Tuple[Registration, ...]
    child_care: Tuple[ChildCareLogRow, ...]
    courses: Tuple[CourseLogRow, ...]


class UnifiedLogView:
    """Read-side projection over registrations, child care and course logs.

    There is no transaction spanning the three record kinds, so callers run
    ``refresh_all`` after every mutation.
    """

    def __init__(
        self,
        ledger: RegistrationLedger,
        child_care: ChildCareTracker,
        courses: CourseProgressAggregator,
        directory: DirectoryRepository,
    ):
        self._ledger = ledger
        self._child_care = child_care
        self._courses = courses
        self._directory = directory

    def refresh_all(self, event_id: str) -> EventLogs:
        registrations = self._ledger.list_by_event(event_id)
        entries = self._child_care.list_for_event(event_id)
        completions = self._courses.list_for_event(event_id)

        people = self._people(e.person_id for e in entries)
        people.update(self._people(c.person_id for c in completions if c.person_id not in people))

        child_rows = [
            ChildCareLogRow(entry=e, parent_name=people[e.person_id].full_name if e.person_id in people else "")
            for e in entries
        ]
        course_rows = [self._course_row(c, people) for c in completions]

        return EventLogs(
            event_id=event_id,
            registrations=tuple(sorted(registrations, key=lambda r: r.registered_at, reverse=True)),
            child_care=tuple(sorted(child_rows, key=lambda r: r.entry.check_in_time, reverse=True)),
            courses=tuple(sorted(course_rows, key=lambda r: r.completion.started_at, reverse=True)),
        )

    def _people(self, person_ids: Iterable[str]) -> dict:
        ids = {p for p in person_ids if p}
        if not ids:
            return {}
        return dict(self._directory.find_people_by_ids(ids))

    @staticmethod
    def _course_row(completion: CourseCompletion, people: Mapping[str, Person]) -> CourseLogRow:
        person = people.get(completion.person_id)
        return CourseLogRow(
            completion=completion,
            first_name=person.first_name if person else "",
            last_name=person.last_name if person else "",
        )
