from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import RegistrationSource
from .model import Registration


class RegistrationRepository(Protocol):
    def get_by_id(self, registration_id: int) -> Optional[Registration]:
        raise NotImplementedError

    def find_for_event_and_person(self, event_id: str, person_id: str) -> Sequence[Registration]:
        """All rows for the pair; more than one means a duplicate slipped in."""

        raise NotImplementedError

    def create(
        self,
        *,
        event_id: str,
        person_id: Optional[str],
        church_id: str,
        status: str,
        registered_at: datetime,
        source: RegistrationSource,
        first_name: str,
        last_name: str,
        email: Optional[str],
        phone: Optional[str],
        comments: Optional[str] = None,
    ) -> int:
        """Insert a row. Raises WriteConflict if the store rejects a duplicate pair."""

        raise NotImplementedError

    def delete(self, registration_id: int) -> bool:
        raise NotImplementedError

    def update_fields(self, registration_id: int, fields: Mapping[str, object]) -> bool:
        raise NotImplementedError

    def list_by_event(self, event_id: str) -> Sequence[Registration]:
        """Newest first."""

        raise NotImplementedError
