from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import ChildCareEntry


class ChildCareRepository(Protocol):
    def get_by_id(self, entry_id: int) -> Optional[ChildCareEntry]:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        person_id: str,
        event_id: str,
        child_name: str,
        age: Optional[str],
        allergies: Optional[str],
        room_id: str,
        room_name: str,
        notes: Optional[str],
        check_in_time: datetime,
    ) -> int:
        raise NotImplementedError

    def mark_checked_out(self, *, entry_id: int, check_out_time: datetime) -> bool:
        """Only transitions rows that are still checked in."""

        raise NotImplementedError

    def delete(self, entry_id: int) -> bool:
        raise NotImplementedError

    def list_for_event(self, event_id: str) -> Sequence[ChildCareEntry]:
        raise NotImplementedError

    def list_for_person(self, person_id: str) -> Sequence[ChildCareEntry]:
        raise NotImplementedError
