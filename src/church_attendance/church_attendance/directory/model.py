from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Person:
    """Directory entry (member) that can register for events.

    Owned by the directory service; the check-in core only reads it.
    """

    person_id: str
    church_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Visitor:
    visitor_id: str
    church_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
