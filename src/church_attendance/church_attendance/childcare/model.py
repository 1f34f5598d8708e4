from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ChildCareStatus


@dataclass(frozen=True)
class ChildCareEntry:
    """A child checked into a room by a registered parent.

    ``person_id`` is the parent. Status only moves checked-in -> checked-out.
    """

    entry_id: int
    person_id: str
    event_id: str
    child_name: str
    room_id: str
    room_name: str
    check_in_time: datetime
    status: ChildCareStatus
    age: Optional[str] = None
    allergies: Optional[str] = None
    notes: Optional[str] = None
    check_out_time: Optional[datetime] = None

    @property
    def is_checked_out(self) -> bool:
        return self.status == ChildCareStatus.CHECKED_OUT
