"""Service error taxonomy.

Services raise these; the handler registered in main.py turns them into
JSON responses. Each class carries the HTTP status it maps to.
"""


class ServiceError(Exception):
    """Base exception for service errors."""

    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnauthenticatedError(ServiceError):
    """No identity on the request."""

    status_code = 401
    default_detail = "Not authenticated"


class ForbiddenError(ServiceError):
    """Identity present but the access rule failed."""

    status_code = 403
    default_detail = "You do not have permission to perform this action"

    def __init__(self, detail: str | None = None, reason: str | None = None):
        self.reason = reason
        super().__init__(detail)


class NotFoundError(ServiceError):
    """Resource id does not resolve."""

    status_code = 404
    default_detail = "Not found"


class ConflictError(ServiceError):
    """A store-level uniqueness rule rejected the write."""

    status_code = 409
    default_detail = "Conflict"


class UpstreamError(ServiceError):
    """An external collaborator was unreachable or answered non-2xx."""

    status_code = 502
    default_detail = "The AI service is unavailable right now. Please try again."


class ParseError(ServiceError):
    """An external collaborator answered with an unexpected shape."""

    status_code = 502
    default_detail = "The AI service returned an unexpected response. Please try again."
