"""Domain error taxonomy.

Services raise these; the HTTP layer maps each class to a status code in
``main.py``. Anything that is not a ``ServiceError`` is treated as an opaque
internal failure.
"""


class ServiceError(Exception):
    """Base exception for service errors."""
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: str = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Malformed input: bad template slot, bad time range, empty body."""
    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    """Missing or invalid credentials or token."""
    status_code = 401
    error_code = "AUTHENTICATION_ERROR"


class AuthorizationError(ServiceError):
    """The caller's role does not permit the operation."""
    status_code = 403
    error_code = "AUTHORIZATION_ERROR"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = 409
    error_code = "CONFLICT"


class ConcurrencyError(ServiceError):
    """A uniqueness race in the store that a single retry did not resolve."""
    status_code = 409
    error_code = "CONCURRENCY_ERROR"
