from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Operator role supplied by the capability gate."""

    ADMIN = "admin"
    OPERATOR = "operator"
    VIEWER = "viewer"

    @property
    def can_manage(self) -> bool:
        return self in (Role.ADMIN, Role.OPERATOR)


class RegistrationSource(str, Enum):
    """Input channel that created a registration."""

    QR_SCAN = "qr-scan"
    MANUAL_CHECKIN = "manual-checkin"
    EMBEDDED_FORM = "embedded-form"


class RegistrationOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already-exists"


class ChildCareStatus(str, Enum):
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"


class CourseStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"


class ResolutionKind(str, Enum):
    """What the identity resolver decided for a scan/manual payload."""

    RESOLVED = "resolved"
    CREATE_FROM_VISITOR = "create-from-visitor"
    CREATE_MEMBER = "create-member"


class ContactKind(str, Enum):
    PHONE = "phone"
    EMAIL = "email"


class ScanStatus(str, Enum):
    REGISTERED = "registered"
    ALREADY_REGISTERED = "already-registered"
    REDIRECT = "redirect"
    ERROR = "error"
    IGNORED = "ignored"
