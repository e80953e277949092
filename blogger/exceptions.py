"""
Error taxonomy for the Blogger API.

Services raise these instead of ``HTTPException`` so they stay usable
outside a request; ``blogger.main`` registers a single handler that
renders every subclass as ``{"detail": message}`` with the matching
status code.
"""


class BlogAPIError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(BlogAPIError):
    """Missing or malformed input, carrying a structured list of violations."""

    status_code = 400
    default_message = "Validation error"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class Unauthenticated(BlogAPIError):
    status_code = 401
    default_message = "Not authorized"


class Forbidden(BlogAPIError):
    status_code = 403
    default_message = "Not authorized to perform this action"


class NotFound(BlogAPIError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(BlogAPIError):
    # Duplicate emails surface as a plain 400 request error.
    status_code = 400
    default_message = "Resource already exists"


class UpstreamFailure(BlogAPIError):
    status_code = 500
    default_message = "Upstream service unavailable"
