"""Error kinds raised by the core services.

The API layer renders each one as ``{"success": false, "message", "error"}``
with the class's ``status_code``.
"""
from typing import Optional


class LibraryError(Exception):
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.message = message or self.default_message
        self.error = error or self.message
        super().__init__(self.message)


class ValidationError(LibraryError):
    status_code = 400
    default_message = "Invalid input"


class AuthError(LibraryError):
    status_code = 401
    default_message = "Not authenticated"


class NotFoundOrForbidden(LibraryError):
    """Missing and not-owned resources are reported the same way."""

    status_code = 404
    default_message = "Resource not found or unauthorized"


class ConflictError(LibraryError):
    status_code = 409
    default_message = "Resource already exists"


__all__ = ["LibraryError", "ValidationError", "AuthError", "NotFoundOrForbidden", "ConflictError"]
