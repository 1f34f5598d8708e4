from __future__ import annotations

from types import SimpleNamespace

import pytest
from flask import Flask

# Needs the native zbar library as well as the Python package.
pytest.importorskip("pyzbar.pyzbar", exc_type=ImportError)

from src.church_attendance.church_attendance.childcare.controller import register as register_child_care
from src.church_attendance.church_attendance.common.web import SESSION_CHURCH_ID, SESSION_OPERATOR_ID, SESSION_ROLE
from src.church_attendance.church_attendance.courses.controller import register as register_courses
from src.church_attendance.church_attendance.events.controller import register as register_events
from src.church_attendance.church_attendance.events.service import EventService
from src.church_attendance.church_attendance.logs.controller import register as register_logs
from src.church_attendance.church_attendance.registrations.controller import register as register_registrations
from src.church_attendance.church_attendance.scanning.session import ScanLoop, ScanLoopRegistry

ANA_ID = "AbCdEfGh12345678901234"


@pytest.fixture
def app(directory, catalog, resolver, ledger, tracker, aggregator, log_view):
    container = SimpleNamespace(
        directory_repo=directory,
        events_repo=catalog,
        identity_resolver=resolver,
        event_service=EventService(catalog),
        registration_ledger=ledger,
        child_care_tracker=tracker,
        course_aggregator=aggregator,
        log_view=log_view,
        scan_loops=ScanLoopRegistry(
            factory=lambda ctx, event_id: ScanLoop(resolver, ledger, context=ctx, event_id=event_id)
        ),
    )
    app = Flask(__name__)
    app.secret_key = "test-secret"
    app.config["BADGE_PREFIX"] = "uid"
    for register in (register_registrations, register_child_care, register_courses, register_events, register_logs):
        register(app, container)
    return app


def _client(app, role):
    client = app.test_client()
    if role:
        with client.session_transaction() as sess:
            sess[SESSION_OPERATOR_ID] = "op-1"
            sess[SESSION_ROLE] = role
            sess[SESSION_CHURCH_ID] = "church-demo"
    return client


def test_anonymous_requests_are_rejected(app):
    res = _client(app, None).get("/api/events/evt-sunday/logs")

    assert res.status_code == 401
    assert res.get_json()["success"] is False


def test_viewer_can_read_but_not_scan(app):
    client = _client(app, "viewer")

    assert client.get("/api/events/evt-sunday/registrations").status_code == 200
    res = client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})
    assert res.status_code == 403


def test_viewer_cannot_submit_registration_form(app, ledger):
    client = _client(app, "viewer")

    res = client.post("/api/events/evt-sunday/registrations", json={"first_name": "Vi", "last_name": "Ewer"})

    assert res.status_code == 403
    assert ledger.list_by_event("evt-sunday") == []


def test_operator_form_registration_for_unknown_event_is_not_found(app, ledger):
    client = _client(app, "operator")

    res = client.post("/api/events/evt-nope/registrations", json={"first_name": "Dee", "last_name": "Ray"})
    assert res.status_code == 404
    assert res.get_json()["error"] == "NotFound"

    res = client.post("/api/events/evt-sunday/registrations", json={"first_name": "Dee", "last_name": "Ray"})
    assert res.status_code == 201
    assert res.get_json()["data"]["registration"]["church_id"] == "church-demo"


def test_scan_twice_registers_once(app):
    client = _client(app, "operator")

    first = client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})
    second = client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})

    assert first.status_code == 200
    assert first.get_json()["data"]["status"] == "registered"
    body = second.get_json()
    assert body["data"]["status"] == "already-registered"
    assert body["data"]["offer_child_check_in"] is True
    assert len(body["data"]["logs"]["registrations"]) == 1


def test_manual_entry_for_unknown_phone_returns_redirect(app):
    res = _client(app, "admin").post("/api/events/evt-sunday/checkin/manual", json={"value": "(555) 222-3333"})

    data = res.get_json()["data"]
    assert res.status_code == 200
    assert data["status"] == "redirect"
    assert data["resolution"]["kind"] == "create-member"
    assert data["resolution"]["prefill"] == {"phone": "5552223333"}


def test_child_check_in_without_rooms_is_a_conflict(app, ledger):
    client = _client(app, "operator")
    client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})

    res = client.post("/api/events/evt-sunday/child-care", json={"parent_id": ANA_ID, "child_name": "Mia"})

    assert res.status_code == 409
    assert res.get_json()["error"] == "NoRoomAvailable"


def test_assign_rooms_then_check_in_child(app):
    client = _client(app, "operator")
    client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})

    rooms = client.put("/api/events/evt-sunday/rooms", json={"rooms": [{"room_id": "room-nursery", "name": "Nursery"}]})
    assert rooms.status_code == 200

    res = client.post("/api/events/evt-sunday/child-care", json={"parent_id": ANA_ID, "child_name": "Mia"})

    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["entry"]["room_id"] == "room-nursery"
    assert data["logs"]["child_care"][0]["parent_name"] == "Ana Lopez"


def test_removing_missing_registration_is_not_found(app):
    res = _client(app, "operator").delete("/api/registrations/42")

    assert res.status_code == 404


def test_badge_png_for_member(app):
    client = _client(app, "viewer")

    res = client.get(f"/api/people/{ANA_ID}/badge.png")
    assert res.status_code == 200
    assert res.mimetype == "image/png"
    assert res.data[:8] == b"\x89PNG\r\n\x1a\n"

    assert client.get("/api/people/nobody/badge.png").status_code == 404


def test_edit_with_invalid_values_is_rejected(app, ledger):
    client = _client(app, "operator")
    client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})
    reg = ledger.get_for_event_and_person("evt-sunday", ANA_ID)

    res = client.patch(f"/api/registrations/{reg.registration_id}", json={"first_name": None, "status": {"x": 1}})
    assert res.status_code == 400
    assert res.get_json()["error"] == "ValidationError"
    assert ledger.get(reg.registration_id) == reg

    assert client.patch(f"/api/registrations/{reg.registration_id}", json=["status"]).status_code == 400

    res = client.patch(f"/api/registrations/{reg.registration_id}", json={"status": " attended "})
    assert res.status_code == 200
    assert res.get_json()["data"]["registration"]["status"] == "attended"


def test_write_succeeds_when_log_refresh_fails(app, log_view, monkeypatch):
    def broken(event_id):
        raise RuntimeError("log query timed out")

    monkeypatch.setattr(log_view, "refresh_all", broken)
    client = _client(app, "operator")

    res = client.post("/api/events/evt-sunday/scan", json={"code": f"uid:{ANA_ID}"})
    assert res.status_code == 200
    assert res.get_json()["data"]["status"] == "registered"
    assert res.get_json()["data"]["logs"] is None

    client.put("/api/events/evt-sunday/rooms", json={"rooms": [{"room_id": "room-nursery", "name": "Nursery"}]})
    res = client.post("/api/events/evt-sunday/child-care", json={"parent_id": ANA_ID, "child_name": "Mia"})
    assert res.status_code == 201
    assert res.get_json()["data"]["logs"] is None


def test_unexpected_assignment_failure_is_a_server_error(app, aggregator, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(aggregator, "assign_subcategory", broken)
    monkeypatch.setattr(aggregator, "unassign_subcategory", broken)
    client = _client(app, "operator")

    payload = {"category_id": "cat-growth", "subcategory_id": "sub-x"}
    res = client.post(f"/api/people/{ANA_ID}/assignments", json=payload)
    assert res.status_code == 500
    assert res.get_json()["message"] == "Failed to assign subcategory"

    res = client.delete(f"/api/people/{ANA_ID}/assignments/sub-x")
    assert res.status_code == 500
    assert res.get_json()["message"] == "Failed to unassign subcategory"
