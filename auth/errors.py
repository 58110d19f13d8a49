"""
Failure taxonomy for the auth flows.

Every flow raises one of these; ``main.py`` turns them into
``{"message": ...}`` JSON bodies with the matching status code.
"""

from __future__ import annotations

from fastapi import status


class AuthError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "auth_error"
    default_message: str = "Authentication request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"
    default_message = "Invalid request"


class Conflict(AuthError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "A customer with this email already exists"


class NotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_message = "Invalid email/username or password"


class Forbidden(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Please verify your email before logging in"


class Expired(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "expired"
    default_message = "Reset token has expired"


class Internal(AuthError):
    code = "internal"
    default_message = "Internal server error"
