"""
Domain errors raised by the services and the authorization gate.

Each error carries the HTTP status it maps to; ``library_api.main``
registers a handler that renders any of them as ``{"detail": message}``.
"""
from fastapi import status


class LibraryError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error"

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class ValidationError(LibraryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(LibraryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Basic"})


class AuthzError(LibraryError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient permissions"


class NotFoundError(LibraryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(LibraryError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class CapacityError(LibraryError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "No available copies for this book"


class InvalidTransitionError(LibraryError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Invalid status transition"


class StorageError(LibraryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage failure"
