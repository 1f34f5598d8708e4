from __future__ import annotations

import io
import json
import logging
import queue

import qrcode
from flask import Flask, Response, current_app, request, send_file, session, stream_with_context
from PIL import Image
from pyzbar.pyzbar import decode as pyzbar_decode

from ..common.serialization import to_jsonable
from ..common.web import (
    SESSION_CHURCH_ID,
    SESSION_EMAIL,
    SESSION_OPERATOR_ID,
    current_role,
    domain_error,
    fail,
    fresh_logs,
    login_required,
    ok,
    operator_required,
)
from ..container import Container
from ..core.constants import DEFAULT_BADGE_PREFIX
from ..core.enums import ScanStatus
from ..core.exceptions import DomainError
from ..scanning.session import OperatorContext, ScanOutcome

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _context() -> OperatorContext:
        return OperatorContext(
            operator_id=str(session[SESSION_OPERATOR_ID]),
            church_id=str(session.get(SESSION_CHURCH_ID) or ""),
            role=current_role(),
            operator_email=session.get(SESSION_EMAIL),
        )

    def _scan_response(event_id: str, outcome: ScanOutcome):
        data = {
            "status": outcome.status.value,
            "registration": outcome.registration,
            "offer_child_check_in": outcome.offer_child_check_in,
            "redirect_query": outcome.redirect_query,
            "logs": fresh_logs(container.log_view, event_id),
        }
        if outcome.resolution is not None:
            data["resolution"] = {
                "kind": outcome.resolution.kind,
                "person_id": outcome.resolution.person_id,
                "visitor_id": outcome.resolution.visitor_id,
                "prefill": outcome.resolution.prefill,
            }
        if outcome.success:
            return ok(outcome.message, data)
        return fail(outcome.message, 409 if outcome.status == ScanStatus.IGNORED else 400, data=data)

    @app.route("/api/events/<event_id>/scan", methods=["POST"], endpoint="api_event_scan")
    @operator_required
    def api_event_scan(event_id: str):
        """Decoded QR text from the operator's camera."""
        data = request.get_json(silent=True) or {}
        code = str(data.get("code", "")).strip()
        if not code:
            return fail("Scanned code is empty")

        loop = container.scan_loops.get(_context(), event_id)
        return _scan_response(event_id, loop.handle_decode(code))

    @app.route("/api/events/<event_id>/scan/image", methods=["POST"], endpoint="api_event_scan_image")
    @operator_required
    def api_event_scan_image(event_id: str):
        """Accept an uploaded badge photo, decode the QR code and process it like a scan."""
        if "image" not in request.files:
            return fail("Image file is missing")

        try:
            img = Image.open(request.files["image"].stream).convert("RGB")
        except (OSError, ValueError):
            return fail("Could not read the uploaded image")

        decoded = pyzbar_decode(img)
        if not decoded:
            return fail("No QR code found in the image")

        code = decoded[0].data.decode("utf-8", errors="replace").strip()
        loop = container.scan_loops.get(_context(), event_id)
        return _scan_response(event_id, loop.handle_decode(code))

    @app.route("/api/events/<event_id>/checkin/manual", methods=["POST"], endpoint="api_event_manual_checkin")
    @operator_required
    def api_event_manual_checkin(event_id: str):
        """Phone, e-mail or member id typed by the operator."""
        data = request.get_json(silent=True) or {}
        value = str(data.get("value", "")).strip()
        if not value:
            return fail("Please enter a phone, e-mail or member id")

        loop = container.scan_loops.get(_context(), event_id)
        return _scan_response(event_id, loop.submit_manual(value))

    @app.route("/api/events/<event_id>/scan/close", methods=["POST"], endpoint="api_event_scan_close")
    @operator_required
    def api_event_scan_close(event_id: str):
        closed = container.scan_loops.close(str(session[SESSION_OPERATOR_ID]), event_id)
        return ok("Scanner closed" if closed else "Scanner was not open")

    @app.route("/api/events/<event_id>/registrations", methods=["GET"], endpoint="api_event_registrations")
    @login_required
    def api_event_registrations(event_id: str):
        return ok(data=container.registration_ledger.list_by_event(event_id))

    @app.route(
        "/api/events/<event_id>/registrations/stream",
        methods=["GET"],
        endpoint="api_event_registrations_stream",
    )
    @login_required
    def api_event_registrations_stream(event_id: str):
        """Server-sent events: the full registration list after every change."""
        updates: "queue.Queue" = queue.Queue()
        unsubscribe = container.registration_ledger.subscribe(event_id, lambda _eid, rows: updates.put(rows))

        def _frame(rows) -> str:
            return f"data: {json.dumps(to_jsonable(list(rows)))}\n\n"

        def generate():
            try:
                yield _frame(container.registration_ledger.list_by_event(event_id))
                while True:
                    try:
                        yield _frame(updates.get(timeout=15))
                    except queue.Empty:
                        yield ": keep-alive\n\n"
            finally:
                unsubscribe()

        return Response(stream_with_context(generate()), mimetype="text/event-stream")

    @app.route("/api/events/<event_id>/registrations", methods=["POST"], endpoint="api_event_register_form")
    @operator_required
    def api_event_register_form(event_id: str):
        """Embedded registration form on the event page."""
        data = request.get_json(silent=True) or {}
        try:
            result = container.registration_ledger.register_from_form(
                event_id,
                church_id=str(session.get(SESSION_CHURCH_ID) or ""),
                first_name=str(data.get("first_name", "")),
                last_name=str(data.get("last_name", "")),
                email=str(data.get("email", "")),
                phone=str(data.get("phone", "")),
                comments=str(data.get("comments", "")),
                person_id=data.get("person_id") or None,
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Registration form failed for event %s", event_id)
            return fail("Failed to register for event", 500)

        message = "Registration successful!" if result.created else "Already registered"
        data = {"outcome": result.outcome, "registration": result.registration}
        return ok(message, data, 201 if result.created else 200)

    @app.route("/api/registrations/<int:registration_id>", methods=["PATCH"], endpoint="api_registration_edit")
    @operator_required
    def api_registration_edit(registration_id: int):
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return fail("Expected a JSON object of fields to update")
        try:
            registration = container.registration_ledger.edit(registration_id, data)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to update registration %s", registration_id)
            return fail("Failed to update registration", 500)
        logs = fresh_logs(container.log_view, registration.event_id)
        return ok("Registration updated successfully", {"registration": registration, "logs": logs})

    @app.route("/api/registrations/<int:registration_id>", methods=["DELETE"], endpoint="api_registration_remove")
    @operator_required
    def api_registration_remove(registration_id: int):
        try:
            registration = container.registration_ledger.remove(registration_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Failed to remove registration %s", registration_id)
            return fail("Failed to remove registration", 500)

        logs = fresh_logs(container.log_view, registration.event_id)
        return ok("Registration removed successfully", {"logs": logs})

    @app.route("/api/people/<person_id>/badge.png", endpoint="api_person_badge")
    @login_required
    def api_person_badge(person_id: str):
        """Printable member badge: QR code carrying the member id."""
        if not container.directory_repo.find_person_by_id(person_id):
            return fail("User not found", 404)

        prefix = current_app.config.get("BADGE_PREFIX") or DEFAULT_BADGE_PREFIX
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(f"{prefix}:{person_id}")
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png")
