class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidPayload(ValidationError):
    """Raised when a scan or manual entry cannot be interpreted."""


class PersonNotFound(DomainError):
    """Raised when a directory lookup by id/phone/email finds nobody."""


class NoRoomAvailable(DomainError):
    """Raised when a child check-in is attempted for an event without rooms."""


class NotFound(DomainError):
    """Raised when the target of an edit/delete no longer exists."""


class WriteConflict(DomainError):
    """Raised when a write collides with a concurrent duplicate."""


class RegistrationRequired(DomainError):
    """Raised when child check-in is attempted for an unregistered parent."""


class AuthorizationError(DomainError):
    """Raised when the operator lacks permission for an action."""
