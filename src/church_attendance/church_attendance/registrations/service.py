from __future__ import annotations

import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..common.validators import optional_text, require_non_empty
from ..core.enums import RegistrationOutcome, RegistrationSource
from ..core.exceptions import NotFound, PersonNotFound, ValidationError, WriteConflict
from ..directory.model import Person
from ..directory.repository import DirectoryRepository
from ..events.model import EventRecord
from ..events.repository import EventCatalog
from .model import DEFAULT_STATUS, EDITABLE_FIELDS, NAME_FIELDS, Registration, RegistrationResult
from .repository import RegistrationRepository

logger = logging.getLogger(__name__)

RegistrationListener = Callable[[str, Sequence[Registration]], None]


class RegistrationLedger:
    """Use case: at most one registration per (event, person).

    The pair is looked up before writing. A concurrent duplicate is caught
    either by the store's unique key (WriteConflict) or by the duplicate scan
    that follows every insert; in both cases the oldest row wins and the
    caller gets ``ALREADY_EXISTS``.
    """

    def __init__(
        self,
        registrations: RegistrationRepository,
        directory: DirectoryRepository,
        catalog: EventCatalog,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._registrations = registrations
        self._directory = directory
        self._catalog = catalog
        self._clock = clock
        self._listeners: Dict[str, List[RegistrationListener]] = defaultdict(list)
        self._listeners_lock = threading.Lock()

    # ---- live view -------------------------------------------------------

    def subscribe(self, event_id: str, listener: RegistrationListener) -> Callable[[], None]:
        """Push the event's registration list to ``listener`` after each change."""

        with self._listeners_lock:
            self._listeners[event_id].append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                listeners = self._listeners.get(event_id, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(event_id, None)

        return unsubscribe

    def _notify(self, event_id: str) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners.get(event_id, []))
        if not listeners:
            return

        rows = self.list_by_event(event_id)
        for listener in listeners:
            try:
                listener(event_id, rows)
            except Exception:
                logger.exception("Registration listener failed for event %s", event_id)

    # ---- commands --------------------------------------------------------

    def register(
        self,
        event_id: str,
        person_id: str,
        source: RegistrationSource,
        *,
        church_id: Optional[str] = None,
        person: Optional[Person] = None,
    ) -> RegistrationResult:
        """Register ``person_id`` for the event once.

        ``church_id`` is the operator's church; when given, events of other
        churches are treated as unknown. The row is always stamped with the
        event's own church.
        """

        person_id = require_non_empty(person_id, "Person id")
        event = self._event(event_id, church_id)

        existing = self._registrations.find_for_event_and_person(event_id, person_id)
        if existing:
            logger.info("Person %s already registered for event %s", person_id, event_id)
            return RegistrationResult(RegistrationOutcome.ALREADY_EXISTS, existing[0])

        if person is None:
            person = self._directory.find_person_by_id(person_id)
        if not person:
            raise PersonNotFound("User not found")

        return self._create_for_person(
            event_id=event_id,
            person_id=person_id,
            church_id=event.church_id,
            source=source,
            first_name=person.first_name,
            last_name=person.last_name,
            email=person.email,
            phone=person.phone,
        )

    def register_from_form(
        self,
        event_id: str,
        *,
        church_id: Optional[str] = None,
        first_name: str,
        last_name: str,
        email: str = "",
        phone: str = "",
        comments: str = "",
        person_id: Optional[str] = None,
    ) -> RegistrationResult:
        """Registration submitted through the event's embedded form."""

        first_name = require_non_empty(first_name, "Name")
        last_name = require_non_empty(last_name, "Last name")
        event = self._event(event_id, church_id)

        if person_id:
            existing = self._registrations.find_for_event_and_person(event_id, person_id)
            if existing:
                return RegistrationResult(RegistrationOutcome.ALREADY_EXISTS, existing[0])
            return self._create_for_person(
                event_id=event_id,
                person_id=person_id,
                church_id=event.church_id,
                source=RegistrationSource.EMBEDDED_FORM,
                first_name=first_name,
                last_name=last_name,
                email=optional_text(email),
                phone=optional_text(phone),
                comments=optional_text(comments),
            )

        registration_id = self._registrations.create(
            event_id=event_id,
            person_id=None,
            church_id=event.church_id,
            status=DEFAULT_STATUS,
            registered_at=self._clock(),
            source=RegistrationSource.EMBEDDED_FORM,
            first_name=first_name,
            last_name=last_name,
            email=optional_text(email),
            phone=optional_text(phone),
            comments=optional_text(comments),
        )
        self._notify(event_id)
        return RegistrationResult(RegistrationOutcome.CREATED, self._get(registration_id))

    def _create_for_person(self, *, event_id: str, person_id: str, **row) -> RegistrationResult:
        try:
            registration_id = self._registrations.create(
                event_id=event_id,
                person_id=person_id,
                status=DEFAULT_STATUS,
                registered_at=self._clock(),
                **row,
            )
        except WriteConflict:
            logger.warning("Concurrent registration detected for person %s on event %s", person_id, event_id)
            winner = self._registrations.find_for_event_and_person(event_id, person_id)
            if not winner:
                raise
            return RegistrationResult(RegistrationOutcome.ALREADY_EXISTS, winner[0])

        keeper = self._merge_duplicates(event_id, person_id)
        self._notify(event_id)

        if keeper is not None and keeper.registration_id != registration_id:
            return RegistrationResult(RegistrationOutcome.ALREADY_EXISTS, keeper)

        logger.info("Registered person %s for event %s (%s)", person_id, event_id, row.get("source"))
        return RegistrationResult(RegistrationOutcome.CREATED, self._get(registration_id))

    def _merge_duplicates(self, event_id: str, person_id: str) -> Optional[Registration]:
        rows = sorted(
            self._registrations.find_for_event_and_person(event_id, person_id),
            key=lambda r: (r.registered_at, r.registration_id),
        )
        if not rows:
            return None

        keeper, duplicates = rows[0], rows[1:]
        for dup in duplicates:
            logger.warning(
                "Removing duplicate registration %s (kept %s) for person %s on event %s",
                dup.registration_id,
                keeper.registration_id,
                person_id,
                event_id,
            )
            self._registrations.delete(dup.registration_id)
        return keeper

    def remove(self, registration_id: int) -> Registration:
        registration = self._registrations.get_by_id(registration_id)
        if not registration or not self._registrations.delete(registration_id):
            raise NotFound("Registration not found; it may have been removed already")

        logger.info("Removed registration %s from event %s", registration_id, registration.event_id)
        self._notify(registration.event_id)
        return registration

    def edit(self, registration_id: int, fields: Mapping[str, object]) -> Registration:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        cleaned = {name: self._clean_field(name, value) for name, value in fields.items()}
        if not self._registrations.update_fields(registration_id, cleaned):
            raise NotFound("Registration not found; it may have been removed already")

        registration = self._get(registration_id)
        self._notify(registration.event_id)
        return registration

    @staticmethod
    def _clean_field(name: str, value: object) -> Optional[str]:
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name} must be text")
        if name in NAME_FIELDS:
            return require_non_empty(value, name.replace("_", " ").capitalize())
        if name == "status":
            return require_non_empty(value, "Status")
        return optional_text(value)

    def _event(self, event_id: str, church_id: Optional[str]) -> EventRecord:
        event = self._catalog.get_event(event_id)
        if not event or (church_id and event.church_id != church_id):
            raise NotFound("Event not found")
        return event

    # ---- queries ---------------------------------------------------------

    def get(self, registration_id: int) -> Optional[Registration]:
        return self._registrations.get_by_id(registration_id)

    def get_for_event_and_person(self, event_id: str, person_id: str) -> Optional[Registration]:
        rows = self._registrations.find_for_event_and_person(event_id, person_id)
        return rows[0] if rows else None

    def list_by_event(self, event_id: str) -> Sequence[Registration]:
        rows = list(self._registrations.list_by_event(event_id))
        rows.sort(key=lambda r: (r.registered_at, r.registration_id), reverse=True)
        return rows

    def _get(self, registration_id: int) -> Registration:
        registration = self._registrations.get_by_id(registration_id)
        if not registration:
            raise NotFound("Registration not found; it may have been removed already")
        return registration
