class WorkflowError(ValueError):
    """Base class for failures scoped to a single requested transition."""

    status_code = 400


class ValidationError(WorkflowError):
    """Malformed input: inverted time range, bad week bounds, missing field."""

    status_code = 422


class AuthorizationError(WorkflowError):
    """The acting role may not perform the requested transition."""

    status_code = 403


class ConflictError(WorkflowError):
    """The record is not in the state the transition requires."""

    status_code = 409


class NotFoundError(WorkflowError):
    status_code = 404
