"""
Domain errors raised by the booking engine.

Each error carries the HTTP status it maps to; the app-level error handler
renders them as ``{"error": message}`` with that status.
"""


class BookingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    status_code = 400


class AuthorizationError(BookingError):
    status_code = 403


class NotFoundError(BookingError):
    status_code = 404


class ConflictError(BookingError):
    status_code = 409


class NotFoundOrAlreadyReviewedError(ConflictError):
    """Conditional approval update touched no row."""


class TransientStorageError(BookingError):
    status_code = 500

    def __init__(self, message: str = "Internal storage error"):
        super().__init__(message)
