"""Domain errors shared by all services.

Services raise these; the API layer renders them with a single exception
handler so every failure reaches the caller as ``{"detail", "error_code"}``.
"""


class ReferhubError(Exception):
    """Base class for domain errors."""

    status_code: int = 400
    error_code: str = "BAD_REQUEST"

    def __init__(self, detail: str | None = None, error_code: str | None = None):
        self.detail = detail or self.__class__.__doc__.strip().rstrip(".")
        if error_code:
            self.error_code = error_code
        super().__init__(self.detail)


class BadRequest(ReferhubError):
    """Invalid request."""

    status_code = 400
    error_code = "BAD_REQUEST"


class Unauthorized(ReferhubError):
    """Not authenticated."""

    status_code = 401
    error_code = "UNAUTHORIZED"


class InsufficientPoints(ReferhubError):
    """Insufficient points."""

    status_code = 402
    error_code = "INSUFFICIENT_POINTS"

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient points: required {required}, available {available}")


class Forbidden(ReferhubError):
    """Insufficient permissions."""

    status_code = 403
    error_code = "FORBIDDEN"


class NotFound(ReferhubError):
    """Not found."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class Conflict(ReferhubError):
    """Conflicting state."""

    status_code = 409
    error_code = "CONFLICT"


class AlreadyEntered(Conflict):
    """Already entered this drawing."""

    error_code = "ALREADY_ENTERED"


class DrawingClosed(Conflict):
    """Drawing is already completed."""

    error_code = "DRAWING_CLOSED"


class DrawingFull(Conflict):
    """Drawing has reached maximum entries."""

    error_code = "DRAWING_FULL"
