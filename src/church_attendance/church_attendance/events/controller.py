from __future__ import annotations

import logging

from flask import Flask, request

from ..common.web import domain_error, fail, login_required, ok, operator_required
from ..container import Container
from ..core.exceptions import DomainError
from .model import Room

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<event_id>/rooms", methods=["GET"], endpoint="api_event_rooms")
    @login_required
    def api_event_rooms(event_id: str):
        return ok(data=container.event_service.list_rooms(event_id))

    @app.route("/api/events/<event_id>/rooms", methods=["PUT"], endpoint="api_event_rooms_assign")
    @operator_required
    def api_event_rooms_assign(event_id: str):
        data = request.get_json(silent=True) or {}
        raw_rooms = data.get("rooms")
        if not isinstance(raw_rooms, list):
            return fail("rooms must be a list")

        try:
            rooms = [Room(room_id=str(r.get("room_id", "")), name=str(r.get("name", ""))) for r in raw_rooms]
            assigned = container.event_service.assign_rooms(event_id, rooms)
        except AttributeError:
            return fail("Each room must be an object with room_id and name")
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to update rooms for event %s", event_id)
            return fail("Failed to update event rooms", 500)

        return ok("Event rooms updated successfully", assigned)

    @app.route("/api/churches/<church_id>/rooms", methods=["GET"], endpoint="api_church_rooms")
    @login_required
    def api_church_rooms(church_id: str):
        return ok(data=container.events_repo.list_church_rooms(church_id))
