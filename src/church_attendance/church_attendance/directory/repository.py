from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

from .model import Person, Visitor


class DirectoryRepository(Protocol):
    """Read-only view of the member/visitor directory.

    Phone numbers are compared digits-only and e-mails lower-cased; callers
    normalize before querying.
    """

    def find_person_by_id(self, person_id: str) -> Optional[Person]:
        raise NotImplementedError

    def find_person_by_phone(self, phone: str) -> Optional[Person]:
        raise NotImplementedError

    def find_person_by_email(self, email: str) -> Optional[Person]:
        raise NotImplementedError

    def find_people_by_ids(self, person_ids: Iterable[str]) -> Mapping[str, Person]:
        raise NotImplementedError

    def find_visitor_by_phone(self, church_id: str, phone: str) -> Optional[Visitor]:
        raise NotImplementedError

    def find_visitor_by_email(self, church_id: str, email: str) -> Optional[Visitor]:
        raise NotImplementedError
