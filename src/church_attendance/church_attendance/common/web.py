from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import jsonify, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    NoRoomAvailable,
    NotFound,
    PersonNotFound,
    RegistrationRequired,
    WriteConflict,
)
from .serialization import to_jsonable

logger = logging.getLogger(__name__)

# Populated by the external authentication layer.
SESSION_OPERATOR_ID = "operator_id"
SESSION_ROLE = "role"
SESSION_CHURCH_ID = "church_id"
SESSION_EMAIL = "email"


def current_role() -> Optional[Role]:
    try:
        return Role(session.get(SESSION_ROLE))
    except ValueError:
        return None


def ok(message: str = "", data: Any = None, status: int = 200):
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = to_jsonable(data)
    return jsonify(body), status


def fail(message: str, status: int = 400, **extra):
    body = {"success": False, "message": message}
    body.update(to_jsonable(extra))
    return jsonify(body), status


def status_for(error: DomainError) -> int:
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, (NotFound, PersonNotFound)):
        return 404
    if isinstance(error, (NoRoomAvailable, RegistrationRequired, WriteConflict)):
        return 409
    return 400


def domain_error(error: DomainError):
    return fail(str(error), status_for(error), error=type(error).__name__)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if SESSION_OPERATOR_ID not in session or current_role() is None:
            return fail("Please sign in to continue", 401)
        return view(*args, **kwargs)

    return wrapper


def operator_required(view):
    """Allow only roles that may create/edit/delete records."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if SESSION_OPERATOR_ID not in session:
            return fail("Please sign in to continue", 401)
        role = current_role()
        if role is None or not role.can_manage:
            return fail("You do not have permission for this action", 403)
        return view(*args, **kwargs)

    return wrapper


def fresh_logs(log_view, event_id: str):
    """Log feed returned after a committed write, or ``None`` if the refresh fails."""

    try:
        return log_view.refresh_all(event_id)
    except Exception:
        logger.exception("Failed to refresh logs for event %s", event_id)
        return None
