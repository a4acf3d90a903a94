"""Error types shared by services and the API layer."""


class TauMineError(Exception):
    """Base error carrying the HTTP status and an optional machine-readable code."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        if self.code:
            return {"error": self.code, "message": self.message}
        return {"error": self.message}


class InvalidRequestError(TauMineError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class ConflictError(TauMineError):
    """Duplicate email, username or similar uniqueness violation."""

    status_code = 400
    default_message = "Resource already exists"


class NotAuthenticatedError(TauMineError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(TauMineError):
    status_code = 404
    default_message = "Not found"


class UpstreamError(TauMineError):
    """Database or auth backend failure."""

    status_code = 500
    default_message = "Upstream service error"
