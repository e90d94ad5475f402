"""Service-layer exceptions.

Each class carries the HTTP status the API renders it with, so routers can
let them propagate to the app-level handler.
"""


class ServiceError(Exception):
    """Base exception for workflow errors."""

    status_code = 500

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(ServiceError):
    """Malformed or out-of-range input."""

    status_code = 400

    @classmethod
    def for_fields(cls, errors: dict[str, str]) -> "ValidationError":
        """Build one error carrying a message per offending field."""
        items = [{"field": field, "message": message} for field, message in errors.items()]
        message = items[0]["message"] if len(items) == 1 else "Invalid input"
        return cls(message, errors=items)


class InvalidOrganizationError(ValidationError):
    """Organization missing or inactive."""


class ForbiddenError(ServiceError):
    """Authenticated but not authorized for this scope."""

    status_code = 403


class NotFoundError(ServiceError):
    """Entity missing."""

    status_code = 404


class ConflictError(ServiceError):
    """State-machine or uniqueness violation."""

    status_code = 409


class DuplicateRequestError(ConflictError):
    """Applicant already has an entry request under review."""


class InvalidTransitionError(ConflictError):
    """Entity is not in a state that allows this transition."""


class DuplicateSupervisorError(ConflictError):
    """Organization already has an active, approved supervisor."""


class DuplicateEmailError(ConflictError):
    """Email already registered."""


class AlreadySubmittedError(ConflictError):
    """Learner already has a live submission awaiting grading."""


class AlreadyGradedError(ConflictError):
    """Graded submissions cannot be resubmitted."""


class HasSubmissionsError(ConflictError):
    """Activity cannot be deleted once it has submissions."""


class UnavailableError(ServiceError):
    """Storage or collaborator failure."""

    status_code = 503
