from __future__ import annotations

import logging

from flask import Flask, request

from ..common.web import domain_error, fail, fresh_logs, login_required, ok, operator_required
from ..container import Container
from ..core.exceptions import DomainError
from .service import ChildCheckIn

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<event_id>/child-care", methods=["GET"], endpoint="api_child_care_list")
    @login_required
    def api_child_care_list(event_id: str):
        return ok(data=container.child_care_tracker.list_for_event(event_id))

    @app.route("/api/events/<event_id>/child-care", methods=["POST"], endpoint="api_child_care_checkin")
    @operator_required
    def api_child_care_checkin(event_id: str):
        data = request.get_json(silent=True) or {}
        parent_id = str(data.get("parent_id", "")).strip()
        if not parent_id:
            return fail("Parent is required")

        form = ChildCheckIn(
            child_name=str(data.get("child_name", "")),
            age=str(data.get("age", "")),
            allergies=str(data.get("allergies", "")),
            notes=str(data.get("notes", "")),
            room_id=data.get("room_id") or None,
        )
        try:
            entry = container.child_care_tracker.check_in(parent_id, event_id, form)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to check in child for event %s", event_id)
            return fail("Failed to check in child", 500)

        logs = fresh_logs(container.log_view, event_id)
        return ok("Child checked in successfully!", {"entry": entry, "logs": logs}, 201)

    @app.route("/api/child-care/<int:entry_id>/checkout", methods=["POST"], endpoint="api_child_care_checkout")
    @operator_required
    def api_child_care_checkout(entry_id: int):
        try:
            entry = container.child_care_tracker.check_out(entry_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to check out child entry %s", entry_id)
            return fail("Failed to check out child", 500)

        logs = fresh_logs(container.log_view, entry.event_id)
        return ok("Child checked out successfully", {"entry": entry, "logs": logs})

    @app.route("/api/child-care/<int:entry_id>", methods=["DELETE"], endpoint="api_child_care_remove")
    @operator_required
    def api_child_care_remove(entry_id: int):
        try:
            entry = container.child_care_tracker.remove(entry_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to remove child entry %s", entry_id)
            return fail("Failed to remove child check-in record", 500)

        logs = fresh_logs(container.log_view, entry.event_id)
        return ok("Child check-in record removed successfully", {"logs": logs})
