from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import EventRecord, Room, Subcategory


class EventCatalog(Protocol):
    def get_event(self, event_id: str) -> Optional[EventRecord]:
        raise NotImplementedError

    def get_events_by_subcategory(self, subcategory_id: str) -> Sequence[EventRecord]:
        raise NotImplementedError

    def get_subcategory(self, subcategory_id: str) -> Optional[Subcategory]:
        raise NotImplementedError

    def list_rooms_for_event(self, event_id: str) -> Sequence[Room]:
        """Rooms assigned to the event, in assignment order."""

        raise NotImplementedError

    def assign_rooms(self, event_id: str, rooms: Sequence[Room]) -> None:
        """Replace the event's assigned-room list."""

        raise NotImplementedError

    def list_church_rooms(self, church_id: str) -> Sequence[Room]:
        raise NotImplementedError
