from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str


@dataclass(frozen=True)
class EventRecord:
    """Catalog entry for one event instance.

    ``required`` marks the event as part of its subcategory's mandatory set and
    ``order`` is its slot inside that set.
    """

    event_id: str
    church_id: str
    title: str
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    required: bool = False
    order: Optional[int] = None

    @property
    def is_course_event(self) -> bool:
        return bool(self.category_id and self.subcategory_id)


@dataclass(frozen=True)
class Subcategory:
    subcategory_id: str
    category_id: str
    name: str
    required: bool = False
    order: Optional[int] = None
