from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.church_attendance.church_attendance.childcare.model import ChildCareEntry
from src.church_attendance.church_attendance.childcare.service import ChildCareTracker
from src.church_attendance.church_attendance.core.enums import ChildCareStatus, CourseStatus
from src.church_attendance.church_attendance.core.exceptions import WriteConflict
from src.church_attendance.church_attendance.courses.model import CourseAssignment, CourseCompletion
from src.church_attendance.church_attendance.courses.service import CourseProgressAggregator
from src.church_attendance.church_attendance.directory.model import Person, Visitor
from src.church_attendance.church_attendance.events.model import EventRecord, Room, Subcategory
from src.church_attendance.church_attendance.identity.service import IdentityResolver
from src.church_attendance.church_attendance.logs.service import UnifiedLogView
from src.church_attendance.church_attendance.registrations.model import Registration
from src.church_attendance.church_attendance.registrations.service import RegistrationLedger

CHURCH = "church-demo"
ANA_ID = "AbCdEfGh12345678901234"
BEN_ID = "ZyXwVuTs98765432109876"


class FakeClock:
    """Advances one minute per call so ordering by time is deterministic."""

    def __init__(self, start=datetime(2026, 1, 4, 10, 0, 0)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now = current + timedelta(minutes=1)
        return current


class FakeDirectory:
    def __init__(self):
        self.people = {
            ANA_ID: Person(ANA_ID, CHURCH, "Ana", "Lopez", "ana@example.org", "5551234567"),
            BEN_ID: Person(BEN_ID, CHURCH, "Ben", "Okafor", "ben@example.org", "5559876543"),
        }
        self.visitors = [Visitor("visitor-001", CHURCH, "Carla", "Mendez", "Carla@Example.org", "(555) 000-1111")]

    def find_person_by_id(self, person_id):
        return self.people.get(person_id)

    def find_person_by_phone(self, phone):
        return next((p for p in self.people.values() if p.phone == phone), None)

    def find_person_by_email(self, email):
        return next((p for p in self.people.values() if (p.email or "").lower() == email), None)

    def find_people_by_ids(self, person_ids):
        return {pid: self.people[pid] for pid in person_ids if pid in self.people}

    def find_visitor_by_phone(self, church_id, phone):
        for v in self.visitors:
            if v.church_id == church_id and "".join(ch for ch in (v.phone or "") if ch.isdigit()) == phone:
                return v
        return None

    def find_visitor_by_email(self, church_id, email):
        for v in self.visitors:
            if v.church_id == church_id and (v.email or "").lower() == email:
                return v
        return None


class FakeCatalog:
    def __init__(self):
        self.events = {
            "evt-sunday": EventRecord("evt-sunday", CHURCH, "Sunday Service"),
            "evt-other": EventRecord("evt-other", CHURCH, "Midweek Prayer"),
            "evt-elsewhere": EventRecord("evt-elsewhere", "church-north", "North Campus Service"),
        }
        self.subcategories = {}
        self.rooms = {}

    def add_course_event(self, event_id, *, subcategory_id="sub-foundations", required=True, order=None):
        self.subcategories.setdefault(
            subcategory_id, Subcategory(subcategory_id, "cat-growth", "Foundations", required=True)
        )
        self.events[event_id] = EventRecord(
            event_id,
            CHURCH,
            event_id.title(),
            category_id="cat-growth",
            subcategory_id=subcategory_id,
            required=required,
            order=order,
        )
        return self.events[event_id]

    def get_event(self, event_id):
        return self.events.get(event_id)

    def get_events_by_subcategory(self, subcategory_id):
        return [e for e in self.events.values() if e.subcategory_id == subcategory_id]

    def get_subcategory(self, subcategory_id):
        return self.subcategories.get(subcategory_id)

    def list_rooms_for_event(self, event_id):
        return list(self.rooms.get(event_id, []))

    def assign_rooms(self, event_id, rooms):
        self.rooms[event_id] = list(rooms)

    def list_church_rooms(self, church_id):
        seen = {}
        for rooms in self.rooms.values():
            for room in rooms:
                seen.setdefault(room.room_id, room)
        return list(seen.values())


class FakeRegistrationsRepo:
    """In-memory ledger store.

    ``enforce_unique`` mirrors the MySQL unique key; ``before_create`` lets a
    test slip in a concurrent write between the lookup and the insert.
    """

    def __init__(self, clock):
        self._clock = clock
        self._next_id = 1
        self.rows = {}
        self.enforce_unique = True
        self.before_create = None

    def get_by_id(self, registration_id):
        return self.rows.get(int(registration_id))

    def find_for_event_and_person(self, event_id, person_id):
        return [r for r in self.rows.values() if r.event_id == event_id and r.person_id == person_id]

    def create(self, **row):
        if self.before_create is not None:
            hook, self.before_create = self.before_create, None
            hook(self)
        if self.enforce_unique and row["person_id"] and self.find_for_event_and_person(row["event_id"], row["person_id"]):
            raise WriteConflict("Duplicate registration")
        return self.insert(**row)

    def insert(self, **row):
        rid = self._next_id
        self._next_id += 1
        self.rows[rid] = Registration(registration_id=rid, **row)
        return rid

    def delete(self, registration_id):
        return self.rows.pop(int(registration_id), None) is not None

    def update_fields(self, registration_id, fields):
        current = self.rows.get(int(registration_id))
        if current is None:
            return False
        self.rows[int(registration_id)] = replace(current, **fields)
        return True

    def list_by_event(self, event_id):
        return [r for r in self.rows.values() if r.event_id == event_id]


class FakeChildCareRepo:
    def __init__(self):
        self._next_id = 1
        self.rows = {}

    def get_by_id(self, entry_id):
        return self.rows.get(int(entry_id))

    def create_checkin(self, *, person_id, event_id, child_name, age, allergies, room_id, room_name, notes, check_in_time):
        eid = self._next_id
        self._next_id += 1
        self.rows[eid] = ChildCareEntry(
            entry_id=eid,
            person_id=person_id,
            event_id=event_id,
            child_name=child_name,
            room_id=room_id,
            room_name=room_name,
            check_in_time=check_in_time,
            status=ChildCareStatus.CHECKED_IN,
            age=age,
            allergies=allergies,
            notes=notes,
        )
        return eid

    def mark_checked_out(self, *, entry_id, check_out_time):
        current = self.rows.get(int(entry_id))
        if current is None or current.is_checked_out:
            return False
        self.rows[int(entry_id)] = replace(current, status=ChildCareStatus.CHECKED_OUT, check_out_time=check_out_time)
        return True

    def delete(self, entry_id):
        return self.rows.pop(int(entry_id), None) is not None

    def list_for_event(self, event_id):
        return [e for e in self.rows.values() if e.event_id == event_id]

    def list_for_person(self, person_id):
        return [e for e in self.rows.values() if e.person_id == person_id]


class FakeCourseRepo:
    def __init__(self):
        self._next_id = 1
        self.completions = {}
        self.assignments = {}
        self.logs = {}

    def get_completion(self, completion_id):
        return self.completions.get(int(completion_id))

    def find_completion(self, person_id, event_id):
        return next(
            (c for c in self.completions.values() if c.person_id == person_id and c.event_id == event_id),
            None,
        )

    def list_completions_for_person(self, person_id):
        return [c for c in self.completions.values() if c.person_id == person_id]

    def list_completions_for_event(self, event_id):
        return [c for c in self.completions.values() if c.event_id == event_id]

    def create_completion(self, *, person_id, event_id, event_name, instructor_name, notes, started_at, category_id, subcategory_id):
        cid = self._next_id
        self._next_id += 1
        self.completions[cid] = CourseCompletion(
            completion_id=cid,
            person_id=person_id,
            event_id=event_id,
            event_name=event_name,
            instructor_name=instructor_name,
            status=CourseStatus.IN_PROGRESS,
            started_at=started_at,
            notes=notes,
            category_id=category_id,
            subcategory_id=subcategory_id,
        )
        return cid

    def update_completion_details(self, *, completion_id, instructor_name, notes):
        current = self.completions.get(int(completion_id))
        if current is None:
            return False
        self.completions[int(completion_id)] = replace(current, instructor_name=instructor_name, notes=notes)
        return True

    def mark_completed(self, *, completion_id, completed_at, completed_by):
        current = self.completions.get(int(completion_id))
        if current is None or current.is_completed:
            return False
        self.completions[int(completion_id)] = replace(
            current, status=CourseStatus.COMPLETED, completed_at=completed_at, completed_by=completed_by
        )
        return True

    def delete_completion(self, completion_id):
        return self.completions.pop(int(completion_id), None) is not None

    def get_assignment(self, person_id, subcategory_id):
        return self.assignments.get((person_id, subcategory_id))

    def list_assignments_for_person(self, person_id):
        return [a for (pid, _), a in self.assignments.items() if pid == person_id]

    def create_assignment(self, *, person_id, category_id, subcategory_id, assigned_at, assigned_by, status):
        key = (person_id, subcategory_id)
        if key in self.assignments:
            return False
        self.assignments[key] = CourseAssignment(person_id, category_id, subcategory_id, assigned_at, status, assigned_by)
        return True

    def delete_assignment(self, person_id, subcategory_id):
        return self.assignments.pop((person_id, subcategory_id), None) is not None

    def get_completion_log(self, person_id, subcategory_id):
        return self.logs.get((person_id, subcategory_id))

    def list_completion_logs(self, person_id):
        return [log for (pid, _), log in self.logs.items() if pid == person_id]

    def append_completion_log(self, log):
        key = (log.person_id, log.subcategory_id)
        if key in self.logs:
            return False
        self.logs[key] = log
        return True

    def delete_completion_log(self, person_id, subcategory_id):
        return self.logs.pop((person_id, subcategory_id), None) is not None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def registrations_repo(clock):
    return FakeRegistrationsRepo(clock)


@pytest.fixture
def child_care_repo():
    return FakeChildCareRepo()


@pytest.fixture
def course_repo():
    return FakeCourseRepo()


@pytest.fixture
def resolver(directory):
    return IdentityResolver(directory)


@pytest.fixture
def ledger(registrations_repo, directory, catalog, clock):
    return RegistrationLedger(registrations_repo, directory, catalog, clock=clock)


@pytest.fixture
def tracker(child_care_repo, registrations_repo, catalog, clock):
    return ChildCareTracker(child_care_repo, registrations_repo, catalog, clock=clock)


@pytest.fixture
def aggregator(course_repo, catalog, directory, clock):
    return CourseProgressAggregator(course_repo, catalog, directory, clock=clock)


@pytest.fixture
def log_view(ledger, tracker, aggregator, directory):
    return UnifiedLogView(ledger, tracker, aggregator, directory)


@pytest.fixture
def nursery():
    return Room("room-nursery", "Nursery")
