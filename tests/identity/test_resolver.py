from __future__ import annotations

from urllib.parse import parse_qs

import pytest

from src.church_attendance.church_attendance.core.enums import ResolutionKind
from src.church_attendance.church_attendance.core.exceptions import InvalidPayload, PersonNotFound

CHURCH = "church-demo"
ANA_ID = "AbCdEfGh12345678901234"


def test_badge_payload_resolves_to_person(resolver):
    res = resolver.resolve(f'{{"uid": "{ANA_ID}"}}', church_id=CHURCH)

    assert res.is_resolved
    assert res.person_id == ANA_ID
    assert res.person.first_name == "Ana"


def test_unknown_identifier_raises_person_not_found(resolver):
    with pytest.raises(PersonNotFound):
        resolver.resolve("uid:QqQqQqQqQqQqQqQqQqQqQq", church_id=CHURCH)


def test_phone_of_member_resolves(resolver):
    res = resolver.resolve("(555) 123-4567", church_id=CHURCH)

    assert res.kind == ResolutionKind.RESOLVED
    assert res.person_id == ANA_ID


def test_email_of_member_resolves_case_insensitively(resolver):
    res = resolver.resolve("BEN@example.org", church_id=CHURCH)

    assert res.kind == ResolutionKind.RESOLVED
    assert res.person.last_name == "Okafor"


def test_visitor_phone_becomes_create_from_visitor_intent(resolver):
    res = resolver.resolve("555-000-1111", church_id=CHURCH)

    assert res.kind == ResolutionKind.CREATE_FROM_VISITOR
    assert res.visitor_id == "visitor-001"
    assert res.prefill == {
        "first_name": "Carla",
        "last_name": "Mendez",
        "email": "carla@example.org",
        "phone": "5550001111",
    }

    query = parse_qs(res.signup_query("evt-sunday"))
    assert query["eventId"] == ["evt-sunday"]
    assert query["visitorId"] == ["visitor-001"]
    assert query["firstName"] == ["Carla"]
    assert query["phone"] == ["5550001111"]


def test_visitor_lookup_is_scoped_to_church(resolver):
    res = resolver.resolve("carla@example.org", church_id="another-church")

    assert res.kind == ResolutionKind.CREATE_MEMBER


def test_unknown_email_becomes_create_member_intent(resolver):
    res = resolver.resolve("new.person@example.org", church_id=CHURCH)

    assert res.kind == ResolutionKind.CREATE_MEMBER
    assert not res.is_resolved
    assert res.person_id is None
    assert res.prefill == {"email": "new.person@example.org"}
    assert parse_qs(res.signup_query("evt-sunday")) == {
        "eventId": ["evt-sunday"],
        "email": ["new.person@example.org"],
    }


@pytest.mark.parametrize("text", ["", "hello there", "uid:short"])
def test_uninterpretable_input_raises_invalid_payload(resolver, text):
    with pytest.raises(InvalidPayload):
        resolver.resolve(text, church_id=CHURCH)


def test_unmatched_phone_carries_normalized_number(resolver):
    res = resolver.resolve("(555) 999-4567", church_id=CHURCH)

    assert res.kind == ResolutionKind.CREATE_MEMBER
    assert res.prefill == {"phone": "5559994567"}
