from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urlencode

from ..core.enums import ContactKind, ResolutionKind
from ..core.exceptions import InvalidPayload, PersonNotFound
from ..directory.model import Person, Visitor
from ..directory.repository import DirectoryRepository
from .parsing import classify_contact, extract_person_id, normalize_phone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a payload: a person, or an intent to create one."""

    kind: ResolutionKind
    person_id: Optional[str] = None
    person: Optional[Person] = None
    visitor_id: Optional[str] = None
    prefill: Dict[str, str] = field(default_factory=dict)

    @property
    def is_resolved(self) -> bool:
        return self.kind == ResolutionKind.RESOLVED

    def signup_query(self, event_id: Optional[str] = None) -> str:
        """Query string for the member-signup page this intent redirects to."""

        params: Dict[str, str] = {}
        if event_id:
            params["eventId"] = event_id
        keys = {"phone": "phone", "email": "email", "first_name": "firstName", "last_name": "lastName"}
        for key, param in keys.items():
            if key in self.prefill:
                params[param] = self.prefill[key]
        if self.visitor_id:
            params["visitorId"] = self.visitor_id
        return urlencode(params)


def _visitor_prefill(visitor: Visitor) -> Dict[str, str]:
    return {
        "first_name": visitor.first_name or "",
        "last_name": visitor.last_name or "",
        "email": (visitor.email or "").strip().lower(),
        "phone": normalize_phone(visitor.phone or ""),
    }


class IdentityResolver:
    """Use case: turn a scan/manual payload into a person or a create intent."""

    def __init__(self, directory: DirectoryRepository):
        self._directory = directory

    def resolve(self, raw: Optional[str], *, church_id: str) -> Resolution:
        person_id = extract_person_id(raw)
        if person_id:
            person = self._directory.find_person_by_id(person_id)
            if not person:
                raise PersonNotFound("User not found")
            return Resolution(kind=ResolutionKind.RESOLVED, person_id=person.person_id, person=person)

        contact = classify_contact(raw)
        if not contact:
            raise InvalidPayload("Invalid code. Could not determine user ID.")

        kind, value = contact
        return self._resolve_contact(kind, value, church_id=church_id)

    def _resolve_contact(self, kind: ContactKind, value: str, *, church_id: str) -> Resolution:
        if kind == ContactKind.PHONE:
            person = self._directory.find_person_by_phone(value)
            visitor_lookup = self._directory.find_visitor_by_phone
        else:
            person = self._directory.find_person_by_email(value)
            visitor_lookup = self._directory.find_visitor_by_email

        if person:
            return Resolution(kind=ResolutionKind.RESOLVED, person_id=person.person_id, person=person)

        visitor = visitor_lookup(church_id, value)
        if visitor:
            prefill = _visitor_prefill(visitor)
            prefill[kind.value] = value
            logger.info("Contact %s matched visitor %s; redirecting to member signup", kind.value, visitor.visitor_id)
            return Resolution(
                kind=ResolutionKind.CREATE_FROM_VISITOR,
                visitor_id=visitor.visitor_id,
                prefill=prefill,
            )

        return Resolution(kind=ResolutionKind.CREATE_MEMBER, prefill={kind.value: value})
