from __future__ import annotations

from flask import Flask

from ..common.web import login_required, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/events/<event_id>/logs", methods=["GET"], endpoint="api_event_logs")
    @login_required
    def api_event_logs(event_id: str):
        return ok(data=container.log_view.refresh_all(event_id))
