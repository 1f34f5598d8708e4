from __future__ import annotations

import logging

from flask import Flask, request, session

from ..common.web import (
    SESSION_EMAIL,
    domain_error,
    fail,
    fresh_logs,
    login_required,
    ok,
    operator_required,
)
from ..container import Container
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<event_id>/courses/start", methods=["POST"], endpoint="api_course_start")
    @operator_required
    def api_course_start(event_id: str):
        data = request.get_json(silent=True) or {}
        person_id = str(data.get("person_id", "")).strip()
        if not person_id:
            return fail("Person is required")

        try:
            completion = container.course_aggregator.start_course(
                person_id,
                event_id,
                instructor_name=str(data.get("instructor_name", "")),
                notes=str(data.get("notes", "")),
                started_by=session.get(SESSION_EMAIL),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to start course for event %s", event_id)
            return fail("Failed to start course", 500)

        logs = fresh_logs(container.log_view, event_id)
        return ok("Course started", {"completion": completion, "logs": logs}, 201)

    @app.route("/api/course-completions/<int:completion_id>/complete", methods=["POST"], endpoint="api_course_complete")
    @operator_required
    def api_course_complete(completion_id: int):
        try:
            outcome = container.course_aggregator.complete_course(
                completion_id,
                completed_by=session.get(SESSION_EMAIL),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to complete course %s", completion_id)
            return fail("Failed to complete course", 500)

        message = "Course marked as complete successfully"
        if outcome.subcategory_completed:
            message += "; all required events are now completed"
        logs = fresh_logs(container.log_view, outcome.completion.event_id)
        data = {"completion": outcome.completion, "subcategory_completed": outcome.subcategory_completed, "logs": logs}
        return ok(message, data)

    @app.route("/api/course-completions/<int:completion_id>", methods=["DELETE"], endpoint="api_course_remove")
    @operator_required
    def api_course_remove(completion_id: int):
        try:
            completion = container.course_aggregator.remove_completion(completion_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to remove course completion %s", completion_id)
            return fail("Failed to remove course completion", 500)

        logs = fresh_logs(container.log_view, completion.event_id)
        return ok("Course completion removed successfully", {"logs": logs})

    @app.route("/api/people/<person_id>/progress", methods=["GET"], endpoint="api_person_progress")
    @login_required
    def api_person_progress(person_id: str):
        return ok(data=container.course_aggregator.person_progress(person_id))

    @app.route(
        "/api/people/<person_id>/progress/<subcategory_id>",
        methods=["GET"],
        endpoint="api_person_subcategory_progress",
    )
    @login_required
    def api_person_subcategory_progress(person_id: str, subcategory_id: str):
        return ok(data=container.course_aggregator.subcategory_progress(person_id, subcategory_id))

    @app.route("/api/people/<person_id>/assignments", methods=["POST"], endpoint="api_person_assign")
    @operator_required
    def api_person_assign(person_id: str):
        data = request.get_json(silent=True) or {}
        try:
            assignment = container.course_aggregator.assign_subcategory(
                person_id,
                category_id=str(data.get("category_id", "")),
                subcategory_id=str(data.get("subcategory_id", "")),
                assigned_by=session.get(SESSION_EMAIL),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to assign subcategory for person %s", person_id)
            return fail("Failed to assign subcategory", 500)
        return ok("Assigned successfully", assignment, 201)

    @app.route(
        "/api/people/<person_id>/assignments/<subcategory_id>",
        methods=["DELETE"],
        endpoint="api_person_unassign",
    )
    @operator_required
    def api_person_unassign(person_id: str, subcategory_id: str):
        try:
            container.course_aggregator.unassign_subcategory(person_id, subcategory_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to unassign subcategory %s for person %s", subcategory_id, person_id)
            return fail("Failed to unassign subcategory", 500)
        return ok("Unassigned successfully")
