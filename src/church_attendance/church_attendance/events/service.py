from __future__ import annotations

import logging
from typing import Sequence

from ..core.exceptions import NotFound, ValidationError
from .model import EventRecord, Room
from .repository import EventCatalog

logger = logging.getLogger(__name__)


class EventService:
    """Use case: manage the rooms offered for child check-in at an event."""

    def __init__(self, catalog: EventCatalog):
        self._catalog = catalog

    def get_event(self, event_id: str) -> EventRecord:
        event = self._catalog.get_event(event_id)
        if not event:
            raise NotFound("Event not found")
        return event

    def assign_rooms(self, event_id: str, rooms: Sequence[Room]) -> Sequence[Room]:
        self.get_event(event_id)

        seen: set[str] = set()
        for room in rooms:
            if not room.room_id or not room.name.strip():
                raise ValidationError("Each room needs an id and a name")
            if room.room_id in seen:
                raise ValidationError(f"Room {room.room_id} is listed twice")
            seen.add(room.room_id)

        self._catalog.assign_rooms(event_id, list(rooms))
        logger.info("Assigned %d room(s) to event %s", len(rooms), event_id)
        return self._catalog.list_rooms_for_event(event_id)

    def list_rooms(self, event_id: str) -> Sequence[Room]:
        return self._catalog.list_rooms_for_event(event_id)
