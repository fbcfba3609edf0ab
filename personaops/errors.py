"""
Error taxonomy shared by the generation functions and the API layer.

Every error carries the HTTP status it maps to. The application installs one
exception handler for PersonaOpsError that renders {"error", "details"?}.
"""

from typing import Optional


class PersonaOpsError(Exception):
    """Base class for errors that are returned to the caller."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class AuthError(PersonaOpsError):
    """Missing, malformed or unverifiable bearer token."""
    status_code = 401
    default_message = "Unauthorized: missing or invalid JWT"


class ValidationError(PersonaOpsError):
    """Request body is not JSON or lacks required fields."""
    status_code = 400
    default_message = "Invalid request body"


class NotFoundError(PersonaOpsError):
    status_code = 404
    default_message = "Not found"


class UpstreamProviderError(PersonaOpsError):
    """Apollo/OpenRouter failure: non-2xx, transport error or malformed payload."""
    status_code = 500
    default_message = "Upstream provider failed"

    def __init__(self, message: str = None, details: Optional[str] = None,
                 provider: str = None, status: int = None):
        super().__init__(message, details)
        self.provider = provider
        self.status = status


class PersistenceError(PersonaOpsError):
    """Database read or write failure. Never retried."""
    status_code = 500
    default_message = "Database error"


class NotImplementedRoute(PersonaOpsError):
    """Deliberate placeholder for an unfinished route."""
    status_code = 501
    default_message = "Not implemented"
