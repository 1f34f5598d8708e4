from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RegistrationOutcome, RegistrationSource

DEFAULT_STATUS = "registered"
EDITABLE_FIELDS = frozenset({"first_name", "last_name", "email", "phone", "comments", "status"})
NAME_FIELDS = frozenset({"first_name", "last_name"})


@dataclass(frozen=True)
class Registration:
    """One person's registration for one event.

    ``person_id`` is empty only for anonymous rows created from the embedded
    registration form.
    """

    registration_id: int
    event_id: str
    person_id: Optional[str]
    church_id: str
    status: str
    registered_at: datetime
    source: RegistrationSource
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    comments: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class RegistrationResult:
    outcome: RegistrationOutcome
    registration: Registration

    @property
    def created(self) -> bool:
        return self.outcome == RegistrationOutcome.CREATED
