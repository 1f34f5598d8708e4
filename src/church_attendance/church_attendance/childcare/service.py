from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.validators import optional_text, require_non_empty
from ..core.exceptions import NoRoomAvailable, NotFound, RegistrationRequired, ValidationError
from ..events.model import Room
from ..events.repository import EventCatalog
from ..registrations.repository import RegistrationRepository
from .model import ChildCareEntry
from .repository import ChildCareRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChildCheckIn:
    """Form data for checking a child in."""

    child_name: str
    age: str = ""
    allergies: str = ""
    notes: str = ""
    room_id: Optional[str] = None


class ChildCareTracker:
    """Use case: check children in and out of an event's rooms.

    none -> checked-in -> checked-out; there is no way back from checked-out.
    """

    def __init__(
        self,
        entries: ChildCareRepository,
        registrations: RegistrationRepository,
        catalog: EventCatalog,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._entries = entries
        self._registrations = registrations
        self._catalog = catalog
        self._clock = clock

    def select_room(self, event_id: str, room_id: Optional[str]) -> Room:
        rooms = list(self._catalog.list_rooms_for_event(event_id))
        if not rooms:
            raise NoRoomAvailable("No room available for check-in")
        if len(rooms) == 1 and not room_id:
            return rooms[0]
        if not room_id:
            raise ValidationError("Please choose a room")

        for room in rooms:
            if room.room_id == room_id:
                return room
        raise ValidationError("Room is not assigned to this event")

    def check_in(self, parent_id: str, event_id: str, form: ChildCheckIn) -> ChildCareEntry:
        child_name = require_non_empty(form.child_name, "Child name")

        if not self._registrations.find_for_event_and_person(event_id, parent_id):
            raise RegistrationRequired("Parent must be registered for the event first")

        room = self.select_room(event_id, form.room_id)

        entry_id = self._entries.create_checkin(
            person_id=parent_id,
            event_id=event_id,
            child_name=child_name,
            age=optional_text(form.age),
            allergies=optional_text(form.allergies),
            room_id=room.room_id,
            room_name=room.name,
            notes=optional_text(form.notes),
            check_in_time=self._clock(),
        )
        logger.info(
            "Checked in child %r (parent %s) to room %s for event %s", child_name, parent_id, room.room_id, event_id
        )
        return self._get(entry_id)

    def check_out(self, entry_id: int) -> ChildCareEntry:
        entry = self._get(entry_id)
        if entry.is_checked_out:
            raise ValidationError("Child is already checked out")

        if not self._entries.mark_checked_out(entry_id=entry_id, check_out_time=self._clock()):
            # Another operator got there first (or removed the entry).
            current = self._get(entry_id)
            if current.is_checked_out:
                raise ValidationError("Child is already checked out")
            raise NotFound("Check-in record not found")

        logger.info("Checked out child entry %s", entry_id)
        return self._get(entry_id)

    def remove(self, entry_id: int) -> ChildCareEntry:
        entry = self._get(entry_id)
        if not self._entries.delete(entry_id):
            raise NotFound("Check-in record not found")
        logger.info("Removed child check-in entry %s", entry_id)
        return entry

    def list_for_event(self, event_id: str) -> Sequence[ChildCareEntry]:
        rows = list(self._entries.list_for_event(event_id))
        rows.sort(key=lambda e: e.check_in_time, reverse=True)
        return rows

    def list_for_person(self, person_id: str) -> Sequence[ChildCareEntry]:
        return list(self._entries.list_for_person(person_id))

    def _get(self, entry_id: int) -> ChildCareEntry:
        entry = self._entries.get_by_id(entry_id)
        if not entry:
            raise NotFound("Check-in record not found")
        return entry
