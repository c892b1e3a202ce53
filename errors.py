from typing import Any, Optional


class AppError(Exception):
    """Base for errors rendered as the uniform `{success: false, error}` envelope."""

    status_code = 500

    def __init__(self, error: str, status_code: Optional[int] = None):
        super().__init__(error)
        self.error = error
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    status_code = 404


class UnauthorizedError(AppError):
    status_code = 401


class ConflictError(AppError):
    # duplicate registrations are reported as a plain bad request
    status_code = 400


class InvalidTransitionError(AppError):
    status_code = 400


class BadRequestError(AppError):
    status_code = 400


class DatabaseError(AppError):
    """Wraps a failure raised by the relational store, keeping the original cause."""

    status_code = 500

    def __init__(self, error: str, cause: Any = None):
        super().__init__(error)
        self.cause = cause
